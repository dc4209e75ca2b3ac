"""Application settings loaded from YAML with environment variable overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Settings sections
# ---------------------------------------------------------------------------


class ChromaSettings(BaseModel):
    url: str = "http://localhost:8000"
    tenant: str = "default_tenant"
    database: str = "default_database"
    timeout: float | None = None
    check_collection: str = "test_collection"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    chroma: ChromaSettings = Field(default_factory=ChromaSettings)


# (env var, section, field)
_ENV_OVERRIDES: list[tuple[str, str, str]] = [
    ("CHROMA_URL", "chroma", "url"),
    ("CHROMA_TENANT", "chroma", "tenant"),
    ("CHROMA_DATABASE", "chroma", "database"),
    ("CHROMA_TIMEOUT", "chroma", "timeout"),
]


def _find_settings_file() -> Path | None:
    """Walk up from cwd looking for settings.yaml."""
    profile = os.getenv("VECTORMEM_PROFILE", "")
    names = [f"settings-{profile}.yaml", "settings.yaml"] if profile else ["settings.yaml"]

    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        for name in names:
            candidate = parent / name
            if candidate.exists():
                return candidate
    return None


def _apply_env(raw: dict) -> dict:
    for env_var, section, key in _ENV_OVERRIDES:
        value = os.getenv(env_var)
        if value:
            raw[section] = {**(raw.get(section) or {}), key: value}
    return raw


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from YAML file, falling back to defaults.

    Environment variables (``CHROMA_URL``, ``CHROMA_TENANT``,
    ``CHROMA_DATABASE``, ``CHROMA_TIMEOUT``) win over the file.
    """
    path = path or _find_settings_file()
    raw: dict = {}
    if path is not None:
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}

    return Settings(**_apply_env(raw))
