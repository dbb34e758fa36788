"""
CLI interface package for Service Changes.

This package contains the Typer application and its commands.
"""

__all__ = ["app"]
