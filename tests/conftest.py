# tests/conftest.py
from factory_kernel.testing.fixtures import factory, factory_settings, module_builder  # noqa: F401
