"""
Configuration management for marcsync

Defaults live here; ``marcsync.config.loader`` builds validated settings.
"""

from .defaults import DEFAULT_SETTINGS, ENV_PREFIX

__all__ = ["DEFAULT_SETTINGS", "ENV_PREFIX"]
