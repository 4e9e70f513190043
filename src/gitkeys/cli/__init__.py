"""Command-line interface for git-keys."""
