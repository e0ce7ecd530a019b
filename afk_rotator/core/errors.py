"""
core/errors.py

Errors raised while loading configuration.
"""


class ConfigError(ValueError):
    """Missing or invalid settings. Fatal at startup."""
