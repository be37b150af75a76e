"""Runtime configuration, read from the environment.

Environment:
    PROOFANCHOR_CIRCUIT_DIR      — prover working directory (default ``circuit``)
    PROOFANCHOR_CIRCUIT_NAME     — circuit package name (default ``zktls_attestation``)
    PROOFANCHOR_PROVER_BIN       — prover executable (default ``nargo``)
    PROOFANCHOR_PROVER_TIMEOUT   — seconds per prover step (default 600)
    PROOFANCHOR_ARTIFACT_DIR     — artifact output directory (default ``proofs``)
    PROOFANCHOR_WITNESS_PATH     — witness file read when no live domain is given
    PROOFANCHOR_HTTP_TIMEOUT     — seconds per network request (default 10)
    PROOFANCHOR_HTTP_RETRIES     — retries for transient network errors (default 2)
    PROOFANCHOR_CLASSIFICATIONS  — JSON rule table replacing the built-in allowlists
    GITHUB_TOKEN                 — optional bearer token for the GitHub API
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from .classification import DomainClassifier
from .errors import ProofAnchorError


def _env_number(name: str, default, convert):
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return convert(raw)
    except ValueError as exc:
        raise ProofAnchorError(f"{name} must be a number, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    return _env_number(name, default, float)


def _env_int(name: str, default: int) -> int:
    return _env_number(name, default, int)


@dataclass
class Settings:
    circuit_dir: str = "circuit"
    circuit_name: str = "zktls_attestation"
    prover_bin: str = "nargo"
    prover_timeout: Optional[float] = 600.0
    artifact_dir: str = "proofs"
    witness_path: str = "circuit/witness/input.json"
    http_timeout: float = 10.0
    http_retries: int = 2
    http_backoff: float = 0.5
    github_token: str = ""
    classifications_path: str = ""
    classifier: DomainClassifier = field(default_factory=DomainClassifier)

    @classmethod
    def from_env(cls) -> "Settings":
        circuit_dir = os.environ.get("PROOFANCHOR_CIRCUIT_DIR", "circuit")
        classifications_path = os.environ.get("PROOFANCHOR_CLASSIFICATIONS", "")
        classifier = (
            DomainClassifier.from_file(classifications_path)
            if classifications_path else DomainClassifier()
        )
        return cls(
            circuit_dir=circuit_dir,
            circuit_name=os.environ.get("PROOFANCHOR_CIRCUIT_NAME", "zktls_attestation"),
            prover_bin=os.environ.get("PROOFANCHOR_PROVER_BIN", "nargo"),
            prover_timeout=_env_float("PROOFANCHOR_PROVER_TIMEOUT", 600.0) or None,
            artifact_dir=os.environ.get("PROOFANCHOR_ARTIFACT_DIR", "proofs"),
            witness_path=os.environ.get(
                "PROOFANCHOR_WITNESS_PATH", os.path.join(circuit_dir, "witness", "input.json")
            ),
            http_timeout=_env_float("PROOFANCHOR_HTTP_TIMEOUT", 10.0),
            http_retries=_env_int("PROOFANCHOR_HTTP_RETRIES", 2),
            github_token=os.environ.get("GITHUB_TOKEN", ""),
            classifications_path=classifications_path,
            classifier=classifier,
        )


__all__ = ["Settings"]
