"""End-to-end attestation: inspect → score → witness → prove → verify → persist.

Strictly sequential per invocation. Ledger submission is optional and runs
last, after the artifacts are on disk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import Settings
from .inspector import DomainInspector, DomainReport
from .ledger import MAX_PROJECT_NAME_LEN, LedgerAdapter, ProjectSubmission, VerificationRecord
from .orchestrator import ProofArtifact, ProofOrchestrator, VerificationOutcome
from .scoring import LegitimacyAssessment, ProjectMetadata, ScoringEngine
from .storage import ArtifactStore
from .witness import WitnessBuilder, WitnessRecord, load_witness

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    witness: WitnessRecord
    artifact: ProofArtifact
    outcome: VerificationOutcome
    artifact_path: Path
    report: Optional[DomainReport] = None
    metadata: Optional[ProjectMetadata] = None
    assessment: Optional[LegitimacyAssessment] = None

    def to_dict(self) -> dict:
        return {
            "domain": self.witness.domain,
            "proof_id": self.artifact.proof_id,
            "artifact_path": str(self.artifact_path),
            "transparency_score": self.witness.transparency_score,
            "risk_level": self.witness.risk_level,
            "verification": self.outcome.to_dict(),
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


class AttestationPipeline:
    def __init__(self, inspector: DomainInspector, orchestrator: ProofOrchestrator,
                 store: ArtifactStore, engine: Optional[ScoringEngine] = None,
                 ledger: Optional[LedgerAdapter] = None):
        self.inspector = inspector
        self.engine = engine or ScoringEngine(inspector.classifier)
        self.builder = WitnessBuilder(inspector, self.engine)
        self.orchestrator = orchestrator
        self.store = store
        self.ledger = ledger

    @classmethod
    def from_settings(cls, settings: Settings,
                      ledger: Optional[LedgerAdapter] = None) -> "AttestationPipeline":
        return cls(
            inspector=DomainInspector(settings),
            orchestrator=ProofOrchestrator.from_settings(settings),
            store=ArtifactStore(settings.artifact_dir),
            ledger=ledger,
        )

    async def run_live(self, domain: str, project_name: Optional[str] = None) -> PipelineResult:
        report = await self.inspector.inspect(domain)
        metadata = self.engine.metadata_for(report)
        assessment = self.engine.assess_legitimacy(metadata)
        logger.info("%s: %s (confidence %d)", report.domain, assessment.label,
                    assessment.confidence_score)

        witness = self.builder.build(report.certificate, report.signals)
        result = self._prove_and_persist(witness, report=report, metadata=metadata,
                                         assessment=assessment)
        self.store.persist_project(metadata)
        self._submit(result, project_name or report.domain)
        return result

    def run_from_file(self, path: str, project_name: Optional[str] = None) -> PipelineResult:
        witness = load_witness(path)
        logger.info("Loaded witness for %s from %s", witness.domain, path)
        result = self._prove_and_persist(witness)
        self._submit(result, project_name or witness.domain)
        return result

    def _prove_and_persist(self, witness: WitnessRecord, **extra) -> PipelineResult:
        artifact = self.orchestrator.generate_proof(witness)
        outcome = self.orchestrator.verify_proof(
            artifact, witness=witness, assessment=extra.get("assessment")
        )
        path = self.store.persist(artifact)
        return PipelineResult(witness=witness, artifact=artifact, outcome=outcome,
                              artifact_path=path, **extra)

    def _submit(self, result: PipelineResult, project_name: str) -> None:
        if self.ledger is None:
            return
        self.ledger.submit_project(
            ProjectSubmission.from_witness(result.witness, project_name[:MAX_PROJECT_NAME_LEN])
        )
        self.ledger.record_verification(
            VerificationRecord.from_outcome(result.witness, result.artifact, result.outcome)
        )


__all__ = ["AttestationPipeline", "PipelineResult"]
