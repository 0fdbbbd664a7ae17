"""Unified settings: CLI flags, env vars, and a JSON config file in one object.

Priority chain (highest to lowest):
  1. Init kwargs  (CLI flags passed by click)
  2. Env vars     (``SOLEXEC_*`` prefix)
  3. JSON file    (``--config`` or ``~/.config/solexec/config.json``)
  4. Code defaults
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple, Type

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from .errors import ConfigError
from .rpc import DEFAULT_RPC
from .transfer import ConfirmPolicy

ENV_PREFIX = "SOLEXEC_"


def default_config_path() -> Path:
    return Path.home() / ".config" / "solexec" / "config.json"


class JsonSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a flat JSON object."""

    def __init__(self, settings_cls: Type[BaseSettings], json_path: Optional[Path]) -> None:
        super().__init__(settings_cls)
        self._data: Dict[str, Any] = {}
        if json_path and json_path.is_file():
            try:
                data = json.loads(json_path.read_text(encoding="utf-8"))
            except ValueError as exc:
                raise ConfigError(f"invalid JSON in {json_path}: {exc}") from exc
            if not isinstance(data, dict):
                raise ConfigError(f"{json_path} must contain a JSON object")
            self._data = data

    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> Dict[str, Any]:
        return self._data


# JSON path for the instance under construction
_tls = threading.local()


class Settings(BaseSettings):
    model_config = {
        "frozen": True,
        "env_prefix": ENV_PREFIX,
    }

    rpc_url: str = DEFAULT_RPC
    keypair_path: Optional[Path] = None
    commitment: Literal["processed", "confirmed", "finalized"] = "finalized"
    request_timeout: float = Field(10.0, gt=0)
    confirm_max_attempts: int = Field(30, ge=1)
    confirm_initial_delay: float = Field(0.5, ge=0)
    confirm_max_delay: float = Field(5.0, ge=0)
    confirm_timeout: float = Field(90.0, gt=0)
    strict_amounts: bool = False
    verbose: bool = False
    log_json: bool = False

    @field_validator("keypair_path")
    @classmethod
    def _expand_user(cls, value: Optional[Path]) -> Optional[Path]:
        return value.expanduser() if value is not None else None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            JsonSettingsSource(settings_cls, getattr(_tls, "json_path", None)),
        )

    @classmethod
    def load(cls, config_file: Optional[Path] = None, **overrides: Any) -> "Settings":
        """Resolve settings; ``overrides`` set to None are ignored.

        An explicit ``config_file`` must exist; the default location is
        optional.
        """
        if config_file is not None and not config_file.is_file():
            raise ConfigError(f"config file not found: {config_file}")
        _tls.json_path = config_file or default_config_path()
        try:
            return cls(**{k: v for k, v in overrides.items() if v is not None})
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc
        finally:
            _tls.json_path = None

    def confirm_policy(self) -> ConfirmPolicy:
        return ConfirmPolicy(
            max_attempts=self.confirm_max_attempts,
            initial_delay=self.confirm_initial_delay,
            max_delay=self.confirm_max_delay,
            timeout=self.confirm_timeout,
        )
