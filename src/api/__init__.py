"""HTTP boundary: JSON envelopes over the score tracking domain."""
