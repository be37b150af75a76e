"""Shared fixtures: fake prover backend, witness factory, offline settings."""
import json
from pathlib import Path

import pytest

from proofanchor.config import Settings
from proofanchor.errors import ExternalToolError
from proofanchor.inspector import TlsCertificate, TransparencySignals
from proofanchor.prover import ProverBackend
from proofanchor.witness import WitnessRecord, encode_domain_name, xor_bytes

NOW = 1_760_000_000
DAY = 86400


class FakeProver(ProverBackend):
    """In-process stand-in for nargo; records every step it is asked to run."""

    def __init__(self, workdir: Path, proof: bytes = b"\x0a\x0bproof-bytes",
                 fail_step: str = "", verify_ok: bool = True, public_inputs=None):
        self.workdir = workdir
        self.proof = proof
        self.fail_step = fail_step
        self.verify_ok = verify_ok
        self.public_inputs = public_inputs or []
        self.calls: list[str] = []
        self.executed_witness = None
        self.verified_proof = None
        self.last_output = ""

    @property
    def witness_path(self) -> Path:
        return self.workdir / "witness" / "input.json"

    def _maybe_fail(self, step: str) -> None:
        if self.fail_step == step:
            self.last_output = f"error: {step} failed: constraint 7 unsatisfied"
            raise ExternalToolError(step, 1, self.last_output)

    def execute(self, witness_path: Path) -> None:
        self.calls.append("execute")
        self._maybe_fail("execute")
        self.executed_witness = json.loads(Path(witness_path).read_text())

    def prove(self) -> bytes:
        self.calls.append("prove")
        self._maybe_fail("prove")
        return self.proof

    def verify(self, proof: bytes) -> bool:
        self.calls.append("verify")
        self._maybe_fail("verify")
        self.verified_proof = proof
        self.last_output = "" if self.verify_ok else "proof rejected"
        return self.verify_ok

    def public_input_names(self) -> list[str]:
        return list(self.public_inputs)

    def verification_key(self) -> str:
        return "00ff"


@pytest.fixture
def fake_prover(tmp_path):
    def make(**kwargs) -> FakeProver:
        return FakeProver(tmp_path / "circuit", **kwargs)
    return make


@pytest.fixture
def make_witness():
    def make(**overrides) -> WitnessRecord:
        salt = bytes(range(1, 33))
        name = encode_domain_name("example.org")
        fields = dict(
            domain_hash=xor_bytes(name[:32], salt),
            certificate_validity_hash=bytes([7] * 32),
            transparency_score=85,
            risk_level=2,
            verification_timestamp=NOW,
            domain_name=name,
            certificate_serial=bytes([1] * 32),
            issuer_hash=bytes([2] * 32),
            expiry_date=NOW + 90 * DAY,
            public_key_hash=bytes([3] * 32),
            salt=salt,
        )
        fields.update(overrides)
        return WitnessRecord(**fields)
    return make


@pytest.fixture
def make_certificate():
    def make(domain="example.org", issuer="Let's Encrypt", is_valid=True,
             window_days=455, serial=b"00000000deadbeef") -> TlsCertificate:
        return TlsCertificate(
            domain=domain,
            issuer=issuer,
            serial_number=serial,
            not_before=NOW - 365 * DAY,
            not_after=NOW - 365 * DAY + window_days * DAY,
            public_key=f"live_key_{domain}".encode(),
            is_valid=is_valid,
            verification_timestamp=NOW,
        )
    return make


@pytest.fixture
def make_signals():
    def make(domain="example.org", **flags) -> TransparencySignals:
        return TransparencySignals(domain=domain, **flags)
    return make


@pytest.fixture
def offline_settings(tmp_path):
    """No retries, no backoff, everything under tmp_path."""
    return Settings(
        circuit_dir=str(tmp_path / "circuit"),
        artifact_dir=str(tmp_path / "proofs"),
        witness_path=str(tmp_path / "circuit" / "witness" / "input.json"),
        http_retries=0,
        http_backoff=0.0,
        github_token="",
    )
