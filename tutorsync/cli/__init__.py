"""Command line interface for tutor-sync."""
