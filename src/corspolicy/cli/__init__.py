"""Command-line interface for corspolicy."""
