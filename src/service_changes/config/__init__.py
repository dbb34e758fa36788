"""
Configuration package for Service Changes.

This package contains settings management and .env file discovery.
"""

__all__ = ["env_loader", "settings"]
