"""
Testing utilities for factory-kernel users.
──────────────────────────────────────────────────────────────
Provides pytest fixtures for isolated factories and throwaway modules.
──────────────────────────────────────────────────────────────
"""
from .fixtures import factory, factory_settings, module_builder

__all__ = ["factory", "factory_settings", "module_builder"]
