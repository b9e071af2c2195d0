"""Core audio and randomness modules."""
