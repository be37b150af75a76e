"""ProofOrchestrator — witness in, proof artifact out.

generate_proof: validate → write witness → execute → prove → package.
verify_proof:   stage proof → verify; the verifier's exit status is the only
                validity signal.

The prover's working directory is a critical section: runs sharing a backend
working area are serialized by a per-area lock.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from .config import Settings
from .errors import ArtifactIOError, ExternalToolError
from .prover import NargoBackend, ProofSession, ProverBackend
from .scoring import LegitimacyAssessment
from .witness import WitnessRecord, save_witness, validate

logger = logging.getLogger(__name__)

CIRCUIT_VERSION = "1.0.0"
CIRCUIT_CONSTRAINTS = 2048
PROOF_TYPE = "noir-ultraplonk"

# Public fields of the circuit, in declaration order.
DEFAULT_PUBLIC_INPUTS = (
    "domain_hash",
    "certificate_validity_hash",
    "transparency_score",
    "risk_level",
    "verification_timestamp",
)


def compute_proof_id(proof: bytes, domain_hash: bytes, timestamp: int) -> str:
    """First 16 hex chars of sha256(proof ‖ domain_hash ‖ timestamp)."""
    digest = hashlib.sha256(proof + domain_hash + str(timestamp).encode()).hexdigest()
    return digest[:16]


# ─── Records ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class ProofMetadata:
    circuit_version: str = CIRCUIT_VERSION
    constraints_count: int = CIRCUIT_CONSTRAINTS
    generation_time_ms: int = 0
    entropy_sum: int = 0
    proof_type: str = PROOF_TYPE

    def to_dict(self) -> dict:
        return {
            "circuit_version": self.circuit_version,
            "constraints_count": self.constraints_count,
            "generation_time_ms": self.generation_time_ms,
            "entropy_sum": self.entropy_sum,
            "proof_type": self.proof_type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProofMetadata":
        return cls(
            circuit_version=str(data.get("circuit_version", CIRCUIT_VERSION)),
            constraints_count=int(data.get("constraints_count", CIRCUIT_CONSTRAINTS)),
            generation_time_ms=int(data.get("generation_time_ms", 0)),
            entropy_sum=int(data.get("entropy_sum", 0)),
            proof_type=str(data.get("proof_type", PROOF_TYPE)),
        )


@dataclass(frozen=True)
class ProofArtifact:
    proof: bytes
    public_inputs: tuple[str, ...]
    verification_key: str
    timestamp: int
    proof_id: str
    metadata: ProofMetadata = field(default_factory=ProofMetadata)

    def to_dict(self) -> dict:
        return {
            "proof": self.proof.hex(),
            "public_inputs": list(self.public_inputs),
            "verification_key": self.verification_key,
            "timestamp": self.timestamp,
            "proof_id": self.proof_id,
            "metadata": self.metadata.to_dict(),
        }

    def to_json(self, compact: bool = False) -> str:
        if compact:
            return json.dumps(self.to_dict(), separators=(",", ":"))
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> "ProofArtifact":
        return cls(
            proof=bytes.fromhex(data["proof"]),
            public_inputs=tuple(str(x) for x in data["public_inputs"]),
            verification_key=str(data.get("verification_key", "")),
            timestamp=int(data["timestamp"]),
            proof_id=str(data["proof_id"]),
            metadata=ProofMetadata.from_dict(data.get("metadata", {})),
        )


@dataclass(frozen=True)
class VerificationOutcome:
    is_valid: bool
    verification_time_ms: int
    proof_size: int
    constraints_verified: int
    error: Optional[str] = None
    transparency_score: Optional[int] = None
    risk_level: Optional[int] = None
    assessment: Optional[LegitimacyAssessment] = None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "verification_time_ms": self.verification_time_ms,
            "proof_size": self.proof_size,
            "constraints_verified": self.constraints_verified,
            "error": self.error,
            "transparency_score": self.transparency_score,
            "risk_level": self.risk_level,
            "assessment": self.assessment.to_dict() if self.assessment else None,
        }


# ─── Working-area locks ────────────────────────────────────────────

_area_locks: dict[str, threading.Lock] = {}
_area_locks_guard = threading.Lock()


def _lock_for(key: str) -> threading.Lock:
    with _area_locks_guard:
        return _area_locks.setdefault(key, threading.Lock())


# ─── Orchestrator ──────────────────────────────────────────────────

class ProofOrchestrator:
    """Drives a ProverBackend through the execute → prove → verify protocol."""

    def __init__(self, backend: ProverBackend):
        self.backend = backend
        self.session: Optional[ProofSession] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProofOrchestrator":
        return cls(NargoBackend(
            settings.circuit_dir,
            circuit_name=settings.circuit_name,
            binary=settings.prover_bin,
            timeout=settings.prover_timeout,
        ))

    def generate_proof(self, witness: WitnessRecord) -> ProofArtifact:
        validate(witness)
        with _lock_for(self.backend.lock_key):
            session = ProofSession(self.backend)
            self.session = session
            started = time.monotonic()

            witness_path = self.backend.witness_path
            try:
                save_witness(witness, str(witness_path))
            except OSError as e:
                session.fail(f"cannot write witness: {e}")
                raise ArtifactIOError(str(witness_path), str(e)) from e

            session.execute(witness_path)
            proof = session.prove()
            generation_time_ms = int((time.monotonic() - started) * 1000)

            public_inputs = self.backend.public_input_names() or list(DEFAULT_PUBLIC_INPUTS)
            verification_key = self.backend.verification_key()

        timestamp = int(time.time())
        artifact = ProofArtifact(
            proof=proof,
            public_inputs=tuple(public_inputs),
            verification_key=verification_key,
            timestamp=timestamp,
            proof_id=compute_proof_id(proof, witness.domain_hash, timestamp),
            metadata=ProofMetadata(
                generation_time_ms=generation_time_ms,
                entropy_sum=sum(witness.salt),
            ),
        )
        logger.info("Generated proof %s (%d bytes, %d ms)",
                    artifact.proof_id, len(proof), generation_time_ms)
        return artifact

    def verify_proof(self, artifact: ProofArtifact, *,
                     witness: Optional[WitnessRecord] = None,
                     assessment: Optional[LegitimacyAssessment] = None) -> VerificationOutcome:
        error: Optional[str] = None
        with _lock_for(self.backend.lock_key):
            session = ProofSession.resume(self.backend, artifact.proof)
            self.session = session
            started = time.monotonic()
            try:
                is_valid = session.verify()
            except ExternalToolError:
                is_valid = False
            if not is_valid:
                error = session.diagnostic or "verification failed"
            elapsed_ms = int((time.monotonic() - started) * 1000)

        logger.info("Proof %s verification: %s", artifact.proof_id, "VALID" if is_valid else "INVALID")
        return VerificationOutcome(
            is_valid=is_valid,
            verification_time_ms=elapsed_ms,
            proof_size=len(artifact.proof),
            constraints_verified=CIRCUIT_CONSTRAINTS if is_valid else 0,
            error=error,
            transparency_score=witness.transparency_score if witness else None,
            risk_level=witness.risk_level if witness else None,
            assessment=assessment,
        )


__all__ = [
    "ProofOrchestrator",
    "ProofArtifact",
    "ProofMetadata",
    "VerificationOutcome",
    "compute_proof_id",
    "DEFAULT_PUBLIC_INPUTS",
    "CIRCUIT_CONSTRAINTS",
]
