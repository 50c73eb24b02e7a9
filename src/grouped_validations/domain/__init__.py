"""Domain layer — rules, groups, option merging, and context resolution.

This layer depends only on stdlib and pydantic.
It must never import from services, plugins, or config.
"""
