"""Score, session and profile rating algorithms."""
