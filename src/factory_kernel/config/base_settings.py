# src/factory_kernel/config/base_settings.py
from __future__ import annotations

import json
import re
from typing import Annotated, Any, Dict, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_LIST_SPLIT = re.compile(r"[,;]")


class FactorySettings(BaseSettings):
    """
    External configuration consumed by the factory engine.
    Every value can come from the environment (FACTORY_*) or a .env file.

    system_modules   → extra module-name prefixes treated as "system"
    import_modules   → modules imported on first use and on every reconfigure
    synonyms         → alias → canonical type name
    strict_overloads → raise on ambiguous constructor matches instead of first-fit
    home_directory   → directory searched for "<module>.py" before importlib
    """

    system_modules: Annotated[List[str], NoDecode] = []
    import_modules: Annotated[List[str], NoDecode] = []
    synonyms: Annotated[Dict[str, str], NoDecode] = {}
    strict_overloads: bool = False
    home_directory: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="FACTORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("system_modules", "import_modules", mode="before")
    @classmethod
    def _split_names(cls, value: Any) -> Any:
        # "a, b; c" → ["a", "b", "c"]; blank items are dropped
        if isinstance(value, str):
            value = _LIST_SPLIT.split(value)
        if isinstance(value, (list, tuple)):
            names: List[str] = []
            for item in value:
                names.extend(n.strip() for n in _LIST_SPLIT.split(str(item)))
            return [n for n in names if n]
        return value

    @field_validator("synonyms", mode="before")
    @classmethod
    def _parse_synonyms(cls, value: Any) -> Any:
        # accepts JSON objects, "money=decimal; uid=uuid" and [("money", "decimal"), ...]
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("{"):
                return json.loads(text)
            value = [item.split("=", 1) for item in _LIST_SPLIT.split(text) if "=" in item]
        if isinstance(value, (list, tuple)):
            return {str(k).strip(): str(v).strip() for k, v in value}
        return value
