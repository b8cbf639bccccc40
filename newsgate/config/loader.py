"""Configuration loading helpers for newsgate."""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .models import FallbackConfig, GlobalConfig, ProviderConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
GLOBAL_CONFIG_FILENAME = "global_config.yaml"
FALLBACK_FILENAME = "fallback.yaml"
PROVIDERS_TEMPLATE = "providers.yaml"
PROVIDER_CONFIG_SUFFIX = ".yaml"
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def _slugify(name: str) -> str:
    return "".join(ch.lower() if ch.isalnum() else "-" for ch in name).strip("-")


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    providers_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("NEWSGATE_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.providers_dir = (self.data_dir / "providers").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.providers_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME

    def fallback_path(self) -> Path:
        return self.data_dir / FALLBACK_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global_cache: GlobalConfig | None = None

    # ------------------------------------------------------------------
    # Global configuration helpers
    # ------------------------------------------------------------------
    def load_global_config(self) -> GlobalConfig:
        if self._global_cache is not None:
            return self._global_cache
        path = self.locator.global_config_path()
        if path.exists():
            global_cfg = self._validate(GlobalConfig, _read_file(path), path)
        else:
            global_cfg = GlobalConfig()
        self._global_cache = global_cfg
        return global_cfg

    def save_global_config(self, config: GlobalConfig) -> None:
        path = self.locator.global_config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._global_cache = config

    # ------------------------------------------------------------------
    # Provider configuration helpers
    # ------------------------------------------------------------------
    def provider_path(self, provider_id: str) -> Path:
        return self.locator.providers_dir / f"{_slugify(provider_id)}{PROVIDER_CONFIG_SUFFIX}"

    def list_provider_files(self) -> Iterable[Path]:
        for path in sorted(self.locator.providers_dir.glob("*")):
            if path.is_file() and path.suffix in CONFIG_EXTENSIONS:
                yield path

    def list_providers(self) -> list[ProviderConfig]:
        """Return configured providers, falling back to the built-in set."""

        files = list(self.list_provider_files())
        if not files:
            return self.builtin_providers()
        providers = [self.load_provider(path) for path in files]
        seen: set[str] = set()
        for provider in providers:
            if provider.provider_id in seen:
                raise ConfigError(f"Duplicate provider id: {provider.provider_id}")
            seen.add(provider.provider_id)
        return providers

    def load_provider(self, identifier: str | Path) -> ProviderConfig:
        path = identifier if isinstance(identifier, Path) else self.provider_path(identifier)
        if not path.exists():
            raise FileNotFoundError(f"Provider configuration not found: {identifier}")
        return self._validate(ProviderConfig, _read_file(path), path)

    def save_provider(self, config: ProviderConfig) -> Path:
        path = self.provider_path(config.provider_id)
        _write_file(path, config.model_dump(mode="json"))
        return path

    def delete_provider(self, provider_id: str) -> None:
        path = self.provider_path(provider_id)
        if path.exists():
            path.unlink()

    def builtin_providers(self) -> list[ProviderConfig]:
        payload = _read_file(TEMPLATES_DIR / PROVIDERS_TEMPLATE)
        items = payload.get("providers") or []
        return [self._validate(ProviderConfig, item, TEMPLATES_DIR / PROVIDERS_TEMPLATE) for item in items]

    # ------------------------------------------------------------------
    # Fallback helpers
    # ------------------------------------------------------------------
    def load_fallback(self) -> FallbackConfig:
        path = self.locator.fallback_path()
        if not path.exists():
            path = TEMPLATES_DIR / FALLBACK_FILENAME
        return self._validate(FallbackConfig, _read_file(path), path)

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------
    def install_defaults(self, force: bool = False) -> list[Path]:
        """Write default global, provider and fallback files into the data directory."""

        written: list[Path] = []
        global_path = self.locator.global_config_path()
        if force or not global_path.exists():
            self.save_global_config(GlobalConfig())
            written.append(global_path)
        fallback_path = self.locator.fallback_path()
        if force or not fallback_path.exists():
            shutil.copyfile(TEMPLATES_DIR / FALLBACK_FILENAME, fallback_path)
            written.append(fallback_path)
        for provider in self.builtin_providers():
            path = self.provider_path(provider.provider_id)
            if force or not path.exists():
                written.append(self.save_provider(provider))
        return written

    @staticmethod
    def _validate(model, payload: dict, path: Path):
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository", "TEMPLATES_DIR"]
