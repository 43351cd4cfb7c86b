"""polyrelease command-line interface."""
