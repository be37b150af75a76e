"""proofanchor.prover — External zero-knowledge prover behind a narrow interface.

States:
    IDLE      — nothing run yet
    EXECUTED  — witness accepted, execution trace generated
    PROVED    — proof bytes emitted
    VERIFIED  — verifier accepted the proof
    FAILED    — terminal; carries the prover's diagnostic output

Usage:
    session = ProofSession(NargoBackend("circuit"))
    session.execute("circuit/witness/input.json")
    proof = session.prove()
    session.verify()
"""

from __future__ import annotations

import logging
import subprocess
import tomllib
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import ExternalToolError, ProofStateError

logger = logging.getLogger(__name__)


class ProverBackend(ABC):
    """Capability interface: execute, prove, verify."""

    #: captured output of the most recent step
    last_output: str = ""

    @property
    @abstractmethod
    def witness_path(self) -> Path:
        """Canonical location the prover reads its witness from."""

    @abstractmethod
    def execute(self, witness_path: Path) -> None:
        """Generate the execution trace. Raises ExternalToolError on failure."""

    @abstractmethod
    def prove(self) -> bytes:
        """Synthesize and return the proof. Raises ExternalToolError on failure."""

    @abstractmethod
    def verify(self, proof: bytes) -> bool:
        """True iff the verifier accepted ``proof``."""

    def public_input_names(self) -> list[str]:
        return []

    def verification_key(self) -> str:
        return ""

    @property
    def lock_key(self) -> str:
        """Identifies the working area that must not be shared between runs."""
        return str(self.witness_path.parent.resolve())


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _combined_output(stdout, stderr) -> str:
    return "\n".join(part for part in (_decode(stdout).strip(), _decode(stderr).strip()) if part)


class NargoBackend(ProverBackend):
    """Runs ``nargo execute|prove|verify`` inside a fixed circuit directory."""

    def __init__(self, circuit_dir: str, circuit_name: str = "zktls_attestation",
                 binary: str = "nargo", timeout: Optional[float] = 600.0):
        self.circuit_dir = Path(circuit_dir)
        self.circuit_name = circuit_name
        self.binary = binary
        self.timeout = timeout
        self.last_output = ""

    @property
    def witness_path(self) -> Path:
        return self.circuit_dir / "witness" / "input.json"

    @property
    def proof_path(self) -> Path:
        return self.circuit_dir / "proofs" / f"{self.circuit_name}.proof"

    @property
    def descriptor_path(self) -> Path:
        return self.circuit_dir / "Verifier.toml"

    @property
    def verification_key_path(self) -> Path:
        return self.circuit_dir / "target" / "vk"

    @property
    def lock_key(self) -> str:
        return str(self.circuit_dir.resolve())

    def _run(self, step: str) -> subprocess.CompletedProcess:
        cmd = [self.binary, step]
        logger.info("Running %s in %s", " ".join(cmd), self.circuit_dir)
        try:
            result = subprocess.run(
                cmd, cwd=self.circuit_dir, capture_output=True, text=True, timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            self.last_output = _combined_output(e.stdout, e.stderr) or f"timed out after {self.timeout}s"
            raise ExternalToolError(step, None, self.last_output) from e
        except OSError as e:
            self.last_output = str(e)
            raise ExternalToolError(step, None, self.last_output) from e
        self.last_output = _combined_output(result.stdout, result.stderr)
        return result

    def _check(self, step: str) -> None:
        result = self._run(step)
        if result.returncode != 0:
            raise ExternalToolError(step, result.returncode, self.last_output)

    def execute(self, witness_path: Path) -> None:
        if Path(witness_path) != self.witness_path:
            logger.warning("Witness %s is not at the canonical path %s", witness_path, self.witness_path)
        self._check("execute")

    def prove(self) -> bytes:
        self._check("prove")
        try:
            return self.proof_path.read_bytes()
        except OSError as e:
            raise ExternalToolError("prove", 0, f"proof file unreadable: {e}") from e

    def verify(self, proof: bytes) -> bool:
        try:
            self.proof_path.parent.mkdir(parents=True, exist_ok=True)
            self.proof_path.write_bytes(proof)
        except OSError as e:
            raise ExternalToolError("verify", None, f"cannot stage proof: {e}") from e
        return self._run("verify").returncode == 0

    def public_input_names(self) -> list[str]:
        try:
            with open(self.descriptor_path, "rb") as f:
                return list(tomllib.load(f).keys())
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.debug("No usable public input descriptor at %s: %s", self.descriptor_path, e)
            return []

    def verification_key(self) -> str:
        try:
            return self.verification_key_path.read_bytes().hex()
        except OSError:
            return ""


# ─── Session state machine ─────────────────────────────────────────

class ProverState(Enum):
    IDLE = "idle"
    EXECUTED = "executed"
    PROVED = "proved"
    VERIFIED = "verified"
    FAILED = "failed"


_TRANSITIONS = {
    ProverState.IDLE: {ProverState.EXECUTED},
    ProverState.EXECUTED: {ProverState.PROVED},
    ProverState.PROVED: {ProverState.VERIFIED},
    ProverState.VERIFIED: set(),
    ProverState.FAILED: set(),
}


class ProofSession:
    """Drives one backend through execute → prove → verify."""

    def __init__(self, backend: ProverBackend):
        self.backend = backend
        self.state = ProverState.IDLE
        self.diagnostic: Optional[str] = None
        self.proof: Optional[bytes] = None

    @classmethod
    def resume(cls, backend: ProverBackend, proof: bytes) -> "ProofSession":
        """Session positioned after a proof produced elsewhere (e.g. loaded from disk)."""
        session = cls(backend)
        session.state = ProverState.PROVED
        session.proof = proof
        return session

    def _require(self, state: ProverState, target: ProverState) -> None:
        if self.state is not state or target not in _TRANSITIONS[self.state]:
            raise ProofStateError(f"cannot move from {self.state.value} to {target.value}")

    def fail(self, diagnostic: str) -> None:
        if self.state is ProverState.FAILED:
            return
        logger.warning("Prover session failed in state %s: %s", self.state.value, diagnostic)
        self.state = ProverState.FAILED
        self.diagnostic = diagnostic

    def execute(self, witness_path: Path) -> None:
        self._require(ProverState.IDLE, ProverState.EXECUTED)
        try:
            self.backend.execute(witness_path)
        except ExternalToolError as e:
            self.fail(e.output or str(e))
            raise
        self.state = ProverState.EXECUTED

    def prove(self) -> bytes:
        self._require(ProverState.EXECUTED, ProverState.PROVED)
        try:
            proof = self.backend.prove()
        except ExternalToolError as e:
            self.fail(e.output or str(e))
            raise
        if not proof:
            self.fail("prover emitted an empty proof")
            raise ExternalToolError("prove", 0, "prover emitted an empty proof")
        self.proof = proof
        self.state = ProverState.PROVED
        return proof

    def verify(self) -> bool:
        self._require(ProverState.PROVED, ProverState.VERIFIED)
        try:
            ok = self.backend.verify(self.proof or b"")
        except ExternalToolError as e:
            self.fail(e.output or str(e))
            raise
        if ok:
            self.state = ProverState.VERIFIED
        else:
            self.fail(self.backend.last_output or "verifier rejected the proof")
        return ok


__all__ = [
    "ProverBackend",
    "NargoBackend",
    "ProverState",
    "ProofSession",
]
