"""fieldcheck command line interface."""
