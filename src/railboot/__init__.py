"""railboot: deployment and local-environment bootstrapper."""

__version__ = "0.3.0"
