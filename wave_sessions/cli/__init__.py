"""Command-line interface for wave-sessions."""
