"""Class values, derivation from ratings and progression."""
