"""Command line entry point for picotui."""
