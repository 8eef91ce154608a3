"""Command-line interface for content-spine (``content-spine`` entry point)."""
