"""isoload command-line interface."""
