"""Command-line interface for ztask."""
