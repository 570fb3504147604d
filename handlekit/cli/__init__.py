"""handlekit command line interface."""
