"""Command line interface for templog."""
