"""debcrate command-line interface."""
