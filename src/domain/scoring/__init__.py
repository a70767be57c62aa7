"""Score normalization, hydration and import."""
