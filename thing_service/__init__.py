# thing_service/__init__.py
"""Thing registry service for the smart-space gateway."""

__version__ = "1.0.0"
