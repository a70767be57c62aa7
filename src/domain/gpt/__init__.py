"""Per game+playtype configuration."""
