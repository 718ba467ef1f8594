"""
──────────────────────────────────────────────────────────────────────────────
factory_kernel.testing.fixtures
──────────────────────────────────────────────────────────────────────────────
Purpose:
    Provide reusable pytest fixtures for code built on the factory engine.

Exports:
    - factory_settings → FactorySettings that ignore the environment and .env
    - factory          → a fresh Factory per test
    - module_builder   → creates in-memory modules from source text

Usage in your test:
    from factory_kernel.testing.fixtures import factory, module_builder

    def test_plugin_found(factory, module_builder):
        module_builder("plugins.extra", "class Extra: pass")
        assert factory.get_type("Extra") is not None
──────────────────────────────────────────────────────────────────────────────
"""
import os
import sys
import textwrap
from types import ModuleType
from typing import List

import pytest

from factory_kernel.config.base_settings import FactorySettings
from factory_kernel.factory import Factory


# ──────────────────────────────────────────────────────────────
# Settings Fixture (per test)
# ──────────────────────────────────────────────────────────────
@pytest.fixture()
def factory_settings(monkeypatch) -> FactorySettings:
    """Settings with FACTORY_* variables cleared and no .env file."""
    for name in list(os.environ):
        if name.upper().startswith("FACTORY_"):
            monkeypatch.delenv(name, raising=False)
    return FactorySettings(_env_file=None)


# ──────────────────────────────────────────────────────────────
# Factory Fixture (per test)
# ──────────────────────────────────────────────────────────────
@pytest.fixture()
def factory(factory_settings):
    engine = Factory(factory_settings)
    yield engine
    engine.discovery.close()


# ──────────────────────────────────────────────────────────────
# In-memory module Fixture
# ──────────────────────────────────────────────────────────────
@pytest.fixture()
def module_builder(factory):
    """
    Build a module from source, publish it in sys.modules and register it with
    the test factory. Every built module is removed again after the test.
    """
    created: List[str] = []

    def build(name: str, source: str = "") -> ModuleType:
        module = ModuleType(name)
        module.__file__ = f"<{name}>"
        sys.modules[name] = module
        created.append(name)
        exec(compile(textwrap.dedent(source), module.__file__, "exec"), module.__dict__)
        factory.register_module(module)
        return module

    yield build

    for name in created:
        sys.modules.pop(name, None)
