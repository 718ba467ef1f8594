# factory_kernel/__init__.py
"""
factory_kernel
──────────────────────────────────────────────────────────────
Runtime type resolution and constructor compilation.
Provides:
    - Module registry (application vs system modules, load hook)
    - Type discovery with invalidating caches
    - Type names: synonyms, generics, Optional and list forms
    - Constructor resolution over @overload declarations
    - Compiled, cached invokers with argument conversion
──────────────────────────────────────────────────────────────
"""

__version__ = "0.3.0"

from factory_kernel.config.base_settings import FactorySettings
from factory_kernel.errors import (
    AmbiguousMatchError,
    ConstructorNotFoundError,
    ConversionError,
    FactoryError,
    ModuleLoadError,
    TypeNotFoundError,
)
from factory_kernel.factory import (
    ConstructorKey,
    Factory,
    construct,
    get_factory,
    get_type,
    try_construct,
)

__all__ = [
    "FactorySettings",
    "Factory",
    "ConstructorKey",
    "get_factory",
    "get_type",
    "construct",
    "try_construct",
    "FactoryError",
    "TypeNotFoundError",
    "ConstructorNotFoundError",
    "AmbiguousMatchError",
    "ConversionError",
    "ModuleLoadError",
]
