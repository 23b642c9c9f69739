"""Command-line entry points for ragup."""
