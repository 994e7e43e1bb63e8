"""Console presentation for the command-line application."""
