# tests/test_settings.py
import pytest

from factory_kernel.config.base_settings import FactorySettings


def test_defaults(factory_settings):
    assert factory_settings.system_modules == []
    assert factory_settings.import_modules == []
    assert factory_settings.synonyms == {}
    assert factory_settings.strict_overloads is False
    assert factory_settings.home_directory is None


def test_module_lists_accept_separated_strings():
    settings = FactorySettings(_env_file=None, system_modules="vendor, legacy.; ,tools")
    assert settings.system_modules == ["vendor", "legacy.", "tools"]


def test_synonyms_accept_pairs_text_and_json():
    assert FactorySettings(_env_file=None, synonyms="money = decimal; uid=uuid").synonyms == {
        "money": "decimal",
        "uid": "uuid",
    }
    assert FactorySettings(_env_file=None, synonyms='{"cash": "decimal"}').synonyms == {"cash": "decimal"}
    assert FactorySettings(_env_file=None, synonyms=[("a", "int")]).synonyms == {"a": "int"}


def test_values_come_from_environment(monkeypatch, factory_settings):
    monkeypatch.setenv("FACTORY_IMPORT_MODULES", "billing.models;billing.rules")
    monkeypatch.setenv("FACTORY_SYNONYMS", "money=decimal")
    monkeypatch.setenv("FACTORY_STRICT_OVERLOADS", "true")
    settings = FactorySettings(_env_file=None)
    assert settings.import_modules == ["billing.models", "billing.rules"]
    assert settings.synonyms == {"money": "decimal"}
    assert settings.strict_overloads is True


def test_values_come_from_env_file(tmp_path, factory_settings):
    env = tmp_path / ".env"
    env.write_text("FACTORY_HOME_DIRECTORY=/srv/plugins\nFACTORY_SYSTEM_MODULES=vendor\n")
    settings = FactorySettings(_env_file=str(env))
    assert settings.home_directory == "/srv/plugins"
    assert settings.system_modules == ["vendor"]


def test_unknown_keys_are_ignored():
    settings = FactorySettings(_env_file=None, something_else=1)
    assert not hasattr(settings, "something_else")


def test_strict_overloads_must_be_boolean():
    with pytest.raises(ValueError):
        FactorySettings(_env_file=None, strict_overloads="sometimes")
