"""Command-line entry point for running the workspace checks."""
