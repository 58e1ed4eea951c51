"""bundlegen - build pipeline orchestrator for config, hooks, webhooks and operations bundles."""

__version__ = "0.1.0"
