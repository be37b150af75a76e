"""Tests for proofanchor.config — environment-driven settings."""

import os

import pytest

from proofanchor.config import Settings
from proofanchor.errors import ProofAnchorError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("PROOFANCHOR_"):
            monkeypatch.delenv(name)


def test_defaults():
    settings = Settings.from_env()
    assert settings.circuit_dir == "circuit"
    assert settings.witness_path == os.path.join("circuit", "witness", "input.json")
    assert settings.http_retries == 2
    assert settings.prover_timeout == 600.0


def test_witness_path_follows_circuit_dir(monkeypatch):
    monkeypatch.setenv("PROOFANCHOR_CIRCUIT_DIR", "/srv/circuit")
    assert Settings.from_env().witness_path == os.path.join("/srv/circuit", "witness", "input.json")


def test_zero_prover_timeout_disables_it(monkeypatch):
    monkeypatch.setenv("PROOFANCHOR_PROVER_TIMEOUT", "0")
    assert Settings.from_env().prover_timeout is None


@pytest.mark.parametrize("name,value", [
    ("PROOFANCHOR_HTTP_RETRIES", "lots"),
    ("PROOFANCHOR_HTTP_RETRIES", "1.5"),
    ("PROOFANCHOR_HTTP_TIMEOUT", "soon"),
    ("PROOFANCHOR_PROVER_TIMEOUT", "10m"),
])
def test_malformed_number_names_variable(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ProofAnchorError, match=name):
        Settings.from_env()
