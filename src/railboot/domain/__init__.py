"""Domain layer: pipeline types, probe results, errors, URL helpers.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
