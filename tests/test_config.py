from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from pagesync.config import SyncConfig, load_config


def test_defaults() -> None:
    config = SyncConfig()
    assert config.debug is False
    assert config.long_poll_allowance == 0
    assert config.deferral_hops == 1
    assert config.max_attempts == 5
    assert config.base_timeout_ms == 20000
    assert config.settle_delay_ms == 2000
    assert config.ready_selector == "[data-ready]"


def test_invalid_values_rejected() -> None:
    with pytest.raises(ValueError):
        SyncConfig(max_attempts=0)
    with pytest.raises(ValueError):
        SyncConfig(long_poll_allowance=-1)
    with pytest.raises(ValueError):
        SyncConfig(diagnostics_interval_s=0)


def test_from_env() -> None:
    config = SyncConfig.from_env(
        {
            "PAGESYNC_DEBUG": "true",
            "PAGESYNC_LONG_POLLS": "1",
            "PAGESYNC_MAX_ATTEMPTS": "3",
            "PAGESYNC_READY_SELECTOR": "#root[data-hydrated]",
        }
    )
    assert config.debug is True
    assert config.long_poll_allowance == 1
    assert config.max_attempts == 3
    assert config.ready_selector == "#root[data-hydrated]"
    assert config.base_timeout_ms == 20000


def test_from_env_falls_back_to_debug_flag() -> None:
    assert SyncConfig.from_env({"DEBUG": "1"}).debug is True
    assert SyncConfig.from_env({}).debug is False
    assert SyncConfig.from_env({"DEBUG": "1", "PAGESYNC_DEBUG": "off"}).debug is False


def test_load_config(tmp_path: Path) -> None:
    path = tmp_path / "pagesync.json"
    path.write_text(json.dumps({"deferral_hops": 2, "settle_delay_ms": 0}))
    config = load_config(path, base=SyncConfig(debug=True))
    assert config.deferral_hops == 2
    assert config.settle_delay_ms == 0
    assert config.debug is True


def test_load_config_rejects_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "pagesync.json"
    path.write_text(json.dumps({"retries": 9}))
    with pytest.raises(jsonschema.ValidationError):
        load_config(path)


def test_load_config_rejects_bad_types(tmp_path: Path) -> None:
    path = tmp_path / "pagesync.json"
    path.write_text(json.dumps({"max_attempts": 0}))
    with pytest.raises(jsonschema.ValidationError):
        load_config(path)

    path.write_text(json.dumps([1, 2]))
    with pytest.raises(ValueError):
        load_config(path)


def test_page_tick_cannot_be_disabled(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="deferral_hops"):
        SyncConfig(deferral_hops=0)
    with pytest.raises(ValueError, match="deferral_hops"):
        SyncConfig.from_env({"PAGESYNC_DEFERRAL_HOPS": "0"})

    path = tmp_path / "pagesync.json"
    path.write_text(json.dumps({"deferral_hops": 0}))
    with pytest.raises(jsonschema.ValidationError):
        load_config(path)
