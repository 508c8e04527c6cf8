"""Command-line interface for punch."""
