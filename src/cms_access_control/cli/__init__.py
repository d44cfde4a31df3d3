"""Command-line interface for cms-access-control."""
