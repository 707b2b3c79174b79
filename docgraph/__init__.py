"""docgraph: documentation cache invalidation and smart file selection."""

__version__ = "0.3.0"
