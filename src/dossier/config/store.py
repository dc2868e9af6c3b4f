"""
dossier — configuration persistence.

File: src/dossier/config/store.py

Purpose
- Load and save ``DossierConfig`` as JSON in the working directory (``.dossier.json``).
- Serve as the checkpoint sink for the configuration pass: every ``save`` is atomic, so an
  interrupted pass never leaves a half-written file behind.

Precedence for the file location
- explicit ``path`` argument > ``DOSSIER_CONFIG`` env var > ``./.dossier.json``.

Failure modes
- Missing file: defaults are returned with ``LoadedConfig.path`` set to ``None``.
- Unreadable or malformed file: ``ConfigLoadError`` (never silently replaced by defaults,
  because the next checkpoint would overwrite the operator's file).
- Write failures: ``ConfigStoreError``.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dossier.config.schema import ConfigValidationError, DossierConfig, default_config
from dossier.constants import CONFIG_PATH_ENV, DEFAULT_CONFIG_FILE
from dossier.utils.fs import atomic_write

if TYPE_CHECKING:
    from collections.abc import Mapping


class ConfigLoadError(ValueError):
    """Raised when the persisted config cannot be read or parsed."""


class ConfigStoreError(ValueError):
    """Raised when the config cannot be written."""


@dataclass(frozen=True, slots=True)
class LoadedConfig:
    config: DossierConfig
    path: Path | None


class ConfigStore:
    """JSON-file backed load/save pair consumed by the plugin manager."""

    __slots__ = ("_path",)

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._path = _resolve_config_path(path, dict(os.environ if environ is None else environ))

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> LoadedConfig:
        if not self._path.exists():
            return LoadedConfig(config=default_config(), path=None)

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigLoadError(f"unable to read config file {self._path}: {exc}") from exc

        try:
            parsed: Any = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigLoadError(f"invalid JSON in {self._path}: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ConfigLoadError(f"config root must be an object: {self._path}")

        try:
            config = DossierConfig.from_dict(parsed)
        except ConfigValidationError as exc:
            raise ConfigLoadError(f"{self._path}: {exc}") from exc
        return LoadedConfig(config=config, path=self._path)

    def save(self, config: DossierConfig) -> None:
        payload = json.dumps(config.to_dict(), indent=2, ensure_ascii=False) + "\n"
        try:
            atomic_write(self._path, payload)
        except OSError as exc:
            raise ConfigStoreError(f"unable to write config file {self._path}: {exc}") from exc

    def update(self, **changes: Any) -> DossierConfig:
        """Load, apply ``changes``, save, and return the updated config."""

        updated = self.load().config.evolve(**changes)
        self.save(updated)
        return updated


def _resolve_config_path(path: str | Path | None, environ: Mapping[str, str]) -> Path:
    if path is not None:
        return Path(path).expanduser().resolve()
    env_path = environ.get(CONFIG_PATH_ENV, "").strip()
    if env_path:
        return Path(env_path).expanduser().resolve()
    return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()


__all__ = ["ConfigLoadError", "ConfigStore", "ConfigStoreError", "LoadedConfig"]
