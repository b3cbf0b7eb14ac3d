"""miner.core.config

Three config surfaces only, later ones winning:
1) `config/default.yaml` over `config/presets/*.yaml`
2) Environment variables (``MINER_SEARCH__WORKERS=16``)
3) Explicit overrides from the CLI

Everything is validated here. A bad factory address or a stray character in the
suffix fails the load, long before a worker thread is spawned.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, EnvSettingsSource

from miner import CREATE2_FACTORY
from miner.core.encoding import check_hex_digits, parse_hex
from miner.core.exceptions import ConfigError

ZERO_HASH = "0x" + "00" * 32


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _default_workers() -> int:
    return os.cpu_count() or 1


class TargetConfig(BaseModel):
    """What to derive and what it must look like."""

    factory: str = CREATE2_FACTORY
    init_code_hash: str = ZERO_HASH
    prefix: str = ""
    suffix: str = ""

    @field_validator("factory")
    @classmethod
    def factory_is_20_bytes(cls, v: str) -> str:
        try:
            parse_hex(v, size=20, field="factory")
        except ConfigError as e:
            raise ValueError(str(e)) from e
        return v

    @field_validator("init_code_hash")
    @classmethod
    def init_code_hash_is_32_bytes(cls, v: str) -> str:
        try:
            parse_hex(v, size=32, field="init_code_hash")
        except ConfigError as e:
            raise ValueError(str(e)) from e
        return v

    @field_validator("prefix", "suffix")
    @classmethod
    def pattern_is_hex(cls, v: str, info) -> str:
        try:
            return check_hex_digits(v, field=str(info.field_name))
        except ConfigError as e:
            raise ValueError(str(e)) from e


class SearchConfig(BaseModel):
    mode: Literal["create2", "ed25519", "ethereum"] = "create2"
    strategy: Literal["counter", "random"] = "counter"
    workers: int = Field(default_factory=_default_workers, ge=1)
    batch_size: int = Field(default=1024, ge=1)
    start_counter: int = Field(default=0, ge=0)
    stop_counter: int | None = None
    counter_bytes: int = Field(default=8, ge=1, le=32)

    @model_validator(mode="after")
    def counter_range_is_sane(self) -> SearchConfig:
        limit = 1 << (8 * self.counter_bytes)
        if self.start_counter >= limit:
            raise ValueError(f"start_counter does not fit in {self.counter_bytes} bytes")
        if self.stop_counter is not None:
            if self.stop_counter > limit:
                raise ValueError(f"stop_counter exceeds 2**{8 * self.counter_bytes}")
            if self.stop_counter <= self.start_counter:
                raise ValueError("stop_counter must be greater than start_counter")
        if self.mode != "create2" and self.strategy == "counter":
            raise ValueError("keypair modes only support the random strategy")
        return self


class ProgressConfig(BaseModel):
    enabled: bool = True
    interval_seconds: float = Field(default=5.0, ge=1.0, le=5.0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class Config(BaseSettings):
    """Root configuration. Single source of truth."""

    preset: Literal["deterministic", "random", "keypair", "custom"] = "deterministic"

    target: TargetConfig = Field(default_factory=TargetConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_prefix": "MINER_", "env_nested_delimiter": "__"}

    @classmethod
    def load(cls, raw: dict[str, Any] | None = None) -> Config:
        """Validate ``raw`` into a Config, converting pydantic errors into ConfigError."""
        try:
            return cls(**(raw or {}))
        except ValidationError as e:
            err = e.errors()[0]
            field = ".".join(str(p) for p in err.get("loc", ())) or None
            raise ConfigError(f"invalid config: {field}: {err.get('msg')}", field=field) from e

    @classmethod
    def env_overlay(cls) -> dict[str, Any]:
        """``MINER_*`` variables as a nested dict shaped like the YAML files.

        Init kwargs outrank env in pydantic-settings, so files are merged with this
        overlay before validation to keep env above YAML.
        """
        return EnvSettingsSource(cls)()

    @classmethod
    def from_yaml(cls, path: Path, *, overrides: dict[str, Any] | None = None) -> Config:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        raw = yaml.safe_load(path.read_text()) or {}

        env = cls.env_overlay()
        preset_name = (overrides or {}).get("preset") or env.get("preset") or raw.get("preset", "deterministic")
        preset_path = path.parent / "presets" / f"{preset_name}.yaml"
        if preset_path.exists():
            preset_data = yaml.safe_load(preset_path.read_text()) or {}
            raw = _deep_merge(preset_data, raw)

        raw = _deep_merge(raw, env)
        if overrides:
            raw = _deep_merge(raw, overrides)

        return cls.load(raw)

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None, *, overrides: dict[str, Any] | None = None) -> Config:
        root = repo_root or Path.cwd()
        return cls.from_yaml(root / "config" / "default.yaml", overrides=overrides)
