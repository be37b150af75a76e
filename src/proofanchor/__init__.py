"""proofanchor — zkTLS transparency attestations for internet domains."""

from proofanchor.errors import (
    ProofAnchorError, ValidationError, NetworkError,
    ExternalToolError, ArtifactIOError, ProofStateError, LedgerError,
)
from proofanchor.classification import ClassificationRule, DomainClassifier, MatchKind
from proofanchor.config import Settings
from proofanchor.inspector import (
    DomainInspector, DomainReport, TlsCertificate, TransparencySignals,
)
from proofanchor.scoring import LegitimacyAssessment, ProjectMetadata, ScoringEngine
from proofanchor.witness import (
    WitnessBuilder, WitnessRecord, validate, load_witness, save_witness,
)
from proofanchor.prover import NargoBackend, ProofSession, ProverBackend, ProverState
from proofanchor.orchestrator import (
    ProofArtifact, ProofMetadata, ProofOrchestrator, VerificationOutcome,
)
from proofanchor.storage import ArtifactStore
from proofanchor.ledger import (
    InMemoryLedger, LedgerAdapter, ProjectSubmission, VerificationRecord,
)
from proofanchor.pipeline import AttestationPipeline, PipelineResult

__version__ = "0.1.0"

__all__ = [
    "ProofAnchorError",
    "ValidationError",
    "NetworkError",
    "ExternalToolError",
    "ArtifactIOError",
    "ProofStateError",
    "LedgerError",
    "ClassificationRule",
    "DomainClassifier",
    "MatchKind",
    "Settings",
    "DomainInspector",
    "DomainReport",
    "TlsCertificate",
    "TransparencySignals",
    "LegitimacyAssessment",
    "ProjectMetadata",
    "ScoringEngine",
    "WitnessBuilder",
    "WitnessRecord",
    "validate",
    "load_witness",
    "save_witness",
    "NargoBackend",
    "ProofSession",
    "ProverBackend",
    "ProverState",
    "ProofArtifact",
    "ProofMetadata",
    "ProofOrchestrator",
    "VerificationOutcome",
    "ArtifactStore",
    "InMemoryLedger",
    "LedgerAdapter",
    "ProjectSubmission",
    "VerificationRecord",
    "AttestationPipeline",
    "PipelineResult",
]
