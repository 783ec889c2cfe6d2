"""Configuration for the settlement detector and hydration poller.

Components receive a ``SyncConfig`` explicitly. The loaders here are meant
for the edges of a test run (CLI, conftest), never for library internals.
"""
from __future__ import annotations

import dataclasses
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import jsonschema

TRUTHY = {"1", "true", "yes", "on"}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "debug": {"type": "boolean"},
        "long_poll_allowance": {"type": "integer", "minimum": 0},
        "deferral_hops": {"type": "integer", "minimum": 1},
        "deferral_delay_ms": {"type": "integer", "minimum": 0},
        "diagnostics_interval_s": {"type": "number", "exclusiveMinimum": 0},
        "max_attempts": {"type": "integer", "minimum": 1},
        "base_timeout_ms": {"type": "integer", "minimum": 1},
        "settle_delay_ms": {"type": "integer", "minimum": 0},
        "ready_selector": {"type": "string", "minLength": 1},
    },
}

# env var -> (field, parser)
_ENV_FIELDS = {
    "PAGESYNC_LONG_POLLS": ("long_poll_allowance", int),
    "PAGESYNC_DEFERRAL_HOPS": ("deferral_hops", int),
    "PAGESYNC_MAX_ATTEMPTS": ("max_attempts", int),
    "PAGESYNC_BASE_TIMEOUT_MS": ("base_timeout_ms", int),
    "PAGESYNC_SETTLE_DELAY_MS": ("settle_delay_ms", int),
    "PAGESYNC_READY_SELECTOR": ("ready_selector", str),
}


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in TRUTHY


@dataclass(frozen=True)
class SyncConfig:
    debug: bool = False
    long_poll_allowance: int = 0
    deferral_hops: int = 1
    deferral_delay_ms: int = 0
    diagnostics_interval_s: float = 5.0
    max_attempts: int = 5
    base_timeout_ms: int = 20000
    settle_delay_ms: int = 2000
    ready_selector: str = "[data-ready]"

    def __post_init__(self) -> None:
        for name in ("long_poll_allowance", "deferral_delay_ms", "settle_delay_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        # At least one page tick before a finished request frees its slot.
        if self.deferral_hops < 1:
            raise ValueError("deferral_hops must be >= 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_timeout_ms < 1:
            raise ValueError("base_timeout_ms must be >= 1")
        if self.diagnostics_interval_s <= 0:
            raise ValueError("diagnostics_interval_s must be > 0")

    def replace(self, **changes: Any) -> "SyncConfig":
        return dataclasses.replace(self, **changes)

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SyncConfig":
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        if "PAGESYNC_DEBUG" in env:
            values["debug"] = _truthy(env.get("PAGESYNC_DEBUG"))
        else:
            values["debug"] = bool(env.get("DEBUG"))
        for key, (field_name, parse) in _ENV_FIELDS.items():
            raw = env.get(key, "").strip()
            if raw:
                values[field_name] = parse(raw)
        return cls(**values)


def validate_config(payload: Dict[str, Any]) -> None:
    jsonschema.validate(payload, CONFIG_SCHEMA)


def load_config(path: Path, base: SyncConfig | None = None) -> SyncConfig:
    with Path(path).open("r", encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    validate_config(payload)
    return (base or SyncConfig()).replace(**payload)
