# bed2mask Utilities
"""Common utilities for the bed2mask converter."""

from .config_parser import load_config, get_nested, validate_config, bed2mask_settings

__all__ = ["load_config", "get_nested", "validate_config", "bed2mask_settings"]
