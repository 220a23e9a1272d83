"""Infrastructure layer: subprocesses, DNS, database and cache clients, exec.

This layer depends on stdlib and third-party libs (SQLAlchemy, redis).
It must never import from domain, services, commands, or output.
The service layer turns raw outcomes into step and probe results.
"""
