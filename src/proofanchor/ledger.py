"""proofanchor.ledger — Interface to the on-chain attestation program.

The ledger ingests project submissions (witness summaries) and proof
verification records, and aggregates community votes:

  - at most one vote per (domain_hash, voter)
  - confidence 0-10
  - once a project has >= 5 votes:
        final_score = round(positive / total * 100)
        verified    = final_score >= 70

``InMemoryLedger`` implements the same rules for local runs and tests.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from .errors import LedgerError
from .orchestrator import ProofArtifact, VerificationOutcome
from .witness import HASH_LEN, WitnessRecord

logger = logging.getLogger(__name__)

MAX_PROJECT_NAME_LEN = 100
MAX_CONFIDENCE = 10
MIN_VOTES_FOR_VERIFICATION = 5
VERIFICATION_THRESHOLD = 70


@dataclass(frozen=True)
class ProjectSubmission:
    domain_hash: bytes
    project_name: str
    transparency_score: int
    risk_level: int
    certificate_validity_hash: bytes

    @classmethod
    def from_witness(cls, witness: WitnessRecord, project_name: str) -> "ProjectSubmission":
        return cls(
            domain_hash=witness.domain_hash,
            project_name=project_name,
            transparency_score=witness.transparency_score,
            risk_level=witness.risk_level,
            certificate_validity_hash=witness.certificate_validity_hash,
        )


@dataclass(frozen=True)
class VerificationRecord:
    domain_hash: bytes
    proof_hash: bytes
    public_inputs: tuple[str, ...]
    is_valid: bool

    @classmethod
    def from_outcome(cls, witness: WitnessRecord, artifact: ProofArtifact,
                     outcome: VerificationOutcome) -> "VerificationRecord":
        return cls(
            domain_hash=witness.domain_hash,
            proof_hash=hashlib.sha256(artifact.proof).digest(),
            public_inputs=artifact.public_inputs,
            is_valid=outcome.is_valid,
        )


@dataclass
class ProjectRecord:
    submission: ProjectSubmission
    submitted_at: int
    positive_votes: int = 0
    negative_votes: int = 0
    final_score: int = 0
    verified: bool = False
    voters: dict[str, tuple[bool, int]] = field(default_factory=dict)

    @property
    def total_votes(self) -> int:
        return self.positive_votes + self.negative_votes


class LedgerAdapter(ABC):
    """What the pipeline needs from a ledger."""

    @abstractmethod
    def submit_project(self, submission: ProjectSubmission) -> None: ...

    @abstractmethod
    def record_verification(self, record: VerificationRecord) -> None: ...

    @abstractmethod
    def vote(self, domain_hash: bytes, voter: str, is_legitimate: bool,
             confidence: int) -> ProjectRecord: ...

    @abstractmethod
    def project(self, domain_hash: bytes) -> Optional[ProjectRecord]: ...

    @property
    @abstractmethod
    def total_projects(self) -> int: ...

    @property
    @abstractmethod
    def total_verifications(self) -> int: ...


class InMemoryLedger(LedgerAdapter):
    """Thread-safe reference ledger with the on-chain program's rules."""

    def __init__(self):
        self._lock = threading.Lock()
        self._projects: dict[bytes, ProjectRecord] = {}
        self._verifications: dict[bytes, VerificationRecord] = {}
        self._total_projects = 0
        self._total_verifications = 0

    def submit_project(self, submission: ProjectSubmission) -> None:
        if len(submission.domain_hash) != HASH_LEN:
            raise LedgerError("domain_hash must be 32 bytes")
        if len(submission.certificate_validity_hash) != HASH_LEN:
            raise LedgerError("certificate_validity_hash must be 32 bytes")
        if not 0 <= submission.transparency_score <= 100:
            raise LedgerError("invalid transparency score")
        if not 0 <= submission.risk_level <= 10:
            raise LedgerError("invalid risk level")
        if len(submission.project_name) > MAX_PROJECT_NAME_LEN:
            raise LedgerError("project name too long")

        with self._lock:
            if submission.domain_hash in self._projects:
                raise LedgerError("project already submitted")
            self._projects[submission.domain_hash] = ProjectRecord(
                submission=submission, submitted_at=int(time.time())
            )
            self._total_projects += 1
        logger.info("Ledger: project %s submitted", submission.project_name)

    def record_verification(self, record: VerificationRecord) -> None:
        with self._lock:
            if record.proof_hash in self._verifications:
                raise LedgerError("proof already recorded")
            self._verifications[record.proof_hash] = record
            self._total_verifications += 1
        logger.info("Ledger: proof %s recorded (valid=%s)", record.proof_hash.hex()[:16], record.is_valid)

    def vote(self, domain_hash: bytes, voter: str, is_legitimate: bool,
             confidence: int) -> ProjectRecord:
        if not 0 <= confidence <= MAX_CONFIDENCE:
            raise LedgerError("invalid confidence level")
        with self._lock:
            project = self._projects.get(domain_hash)
            if project is None:
                raise LedgerError("unknown project")
            if voter in project.voters:
                raise LedgerError("already voted on this project")
            project.voters[voter] = (is_legitimate, confidence)
            if is_legitimate:
                project.positive_votes += 1
            else:
                project.negative_votes += 1

            total = project.total_votes
            if total >= MIN_VOTES_FOR_VERIFICATION:
                project.final_score = round(project.positive_votes / total * 100)
                project.verified = project.final_score >= VERIFICATION_THRESHOLD
            return project

    def project(self, domain_hash: bytes) -> Optional[ProjectRecord]:
        with self._lock:
            return self._projects.get(domain_hash)

    def verification(self, proof_hash: bytes) -> Optional[VerificationRecord]:
        with self._lock:
            return self._verifications.get(proof_hash)

    @property
    def total_projects(self) -> int:
        return self._total_projects

    @property
    def total_verifications(self) -> int:
        return self._total_verifications


__all__ = [
    "LedgerAdapter",
    "InMemoryLedger",
    "ProjectSubmission",
    "VerificationRecord",
    "ProjectRecord",
]
