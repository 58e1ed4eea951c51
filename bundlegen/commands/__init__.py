"""CLI commands for bundlegen."""
