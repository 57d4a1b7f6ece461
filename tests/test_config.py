# SPDX-License-Identifier: Apache-2.0
"""Tests for settings, the deployment file and env parsing helpers."""

from __future__ import annotations

import json

import pytest

from artisanal.core import config
from artisanal.core.config import Settings, load_deployment
from artisanal.core.errors import ConfigurationError

# =============================================================================
# load_deployment
# =============================================================================


def test_load_deployment_reads_both_app_ids(tmp_path) -> None:
    path = tmp_path / "deployment.json"
    path.write_text(json.dumps({"artisanRegistry": 12, "artisanalNFT": "34"}))
    assert load_deployment(path) == (12, 34)


def test_load_deployment_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError, match="Cannot read deployment file"):
        load_deployment(tmp_path / "nope.json")


def test_load_deployment_invalid_json(tmp_path) -> None:
    path = tmp_path / "deployment.json"
    path.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_deployment(path)


@pytest.mark.parametrize(
    "payload",
    [
        {"artisanRegistry": 1},
        {"artisanRegistry": "x", "artisanalNFT": 2},
        {"artisanRegistry": 0, "artisanalNFT": 2},
    ],
)
def test_load_deployment_rejects_missing_or_unset_ids(tmp_path, payload) -> None:
    path = tmp_path / "deployment.json"
    path.write_text(json.dumps(payload))
    with pytest.raises(ConfigurationError):
        load_deployment(path)


# =============================================================================
# Settings
# =============================================================================


def test_with_deployment_overlays_ids(tmp_path) -> None:
    path = tmp_path / "deployment.json"
    path.write_text(json.dumps({"artisanRegistry": 7, "artisanalNFT": 8}))
    base = Settings(REGISTRY_APP_ID=1, NFT_APP_ID=2)

    derived = base.with_deployment(str(path))

    assert (derived.REGISTRY_APP_ID, derived.NFT_APP_ID) == (7, 8)
    assert (base.REGISTRY_APP_ID, base.NFT_APP_ID) == (1, 2)


def test_with_deployment_without_file_is_identity(tmp_path) -> None:
    base = Settings(REGISTRY_APP_ID=1, NFT_APP_ID=2)
    assert base.with_deployment(str(tmp_path / "absent.json")) is base


def test_mnemonics_split_and_normalized() -> None:
    cfg = Settings(WALLET_MNEMONICS=" alpha  beta ,\n gamma delta , ,")
    assert cfg.mnemonics() == ["alpha beta", "gamma delta"]


def test_mnemonics_empty() -> None:
    assert Settings(WALLET_MNEMONICS="").mnemonics() == []


def test_settings_are_frozen() -> None:
    cfg = Settings()
    with pytest.raises(AttributeError):
        cfg.NFT_APP_ID = 5  # type: ignore[misc]


# =============================================================================
# Env helpers
# =============================================================================


def test_env_int_falls_back_on_garbage(monkeypatch) -> None:
    monkeypatch.setenv("ARTISANAL_TEST_INT", "twelve")
    assert config._env_int("ARTISANAL_TEST_INT", 4) == 4
    monkeypatch.setenv("ARTISANAL_TEST_INT", " 12 ")
    assert config._env_int("ARTISANAL_TEST_INT", 4) == 12


def test_env_float_falls_back_when_unset(monkeypatch) -> None:
    monkeypatch.delenv("ARTISANAL_TEST_FLOAT", raising=False)
    assert config._env_float("ARTISANAL_TEST_FLOAT", 2.5) == 2.5
    monkeypatch.setenv("ARTISANAL_TEST_FLOAT", "0.75")
    assert config._env_float("ARTISANAL_TEST_FLOAT", 2.5) == 0.75
