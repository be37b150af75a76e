"""
proofanchor.storage — Filesystem persistence for proof artifacts.

Layout under the base directory:
    proof_<id>.json          full artifact, pretty-printed
    proof_<id>.ledger.json   same artifact on one line, for ledger submission
    proof_<id>.meta.json     metadata extract
    projects/project_<ms>.json   project metadata for community review

Writes are not transactional: a crash between files can leave a partial set.
Listing skips anything that does not parse instead of failing.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import time
from pathlib import Path
from typing import Optional

from proofanchor.errors import ArtifactIOError
from proofanchor.orchestrator import ProofArtifact
from proofanchor.scoring import ProjectMetadata

logger = logging.getLogger(__name__)

_PROOF_FILE_RE = re.compile(r"^proof_([0-9a-f]{16})\.json$")
_PROJECT_FILE_RE = re.compile(r"^project_(\d+)\.json$")


class ArtifactStore:
    """Deterministic, proof_id-keyed artifact files."""

    def __init__(self, base_dir: str = "proofs"):
        self._base_dir = Path(base_dir)
        self._lock = threading.Lock()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def projects_dir(self) -> Path:
        return self._base_dir / "projects"

    def proof_path(self, proof_id: str) -> Path:
        return self._base_dir / f"proof_{proof_id}.json"

    def ledger_path(self, proof_id: str) -> Path:
        return self._base_dir / f"proof_{proof_id}.ledger.json"

    def metadata_path(self, proof_id: str) -> Path:
        return self._base_dir / f"proof_{proof_id}.meta.json"

    def _write(self, path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                f.write(text)
        except OSError as e:
            raise ArtifactIOError(str(path), str(e)) from e

    # ── Proofs ──

    def persist(self, artifact: ProofArtifact) -> Path:
        """Write the three representations of ``artifact``; returns the full-form path."""
        meta = {"proof_id": artifact.proof_id, "timestamp": artifact.timestamp,
                **artifact.metadata.to_dict()}
        with self._lock:
            path = self.proof_path(artifact.proof_id)
            self._write(path, artifact.to_json() + "\n")
            self._write(self.ledger_path(artifact.proof_id), artifact.to_json(compact=True))
            self._write(self.metadata_path(artifact.proof_id), json.dumps(meta, indent=2) + "\n")
        logger.info("Persisted proof %s to %s", artifact.proof_id, self._base_dir)
        return path

    def list(self) -> list[str]:
        """Sorted ids of every readable proof artifact."""
        if not self._base_dir.is_dir():
            return []
        ids = []
        for path in self._base_dir.iterdir():
            m = _PROOF_FILE_RE.match(path.name)
            if not m:
                continue
            try:
                artifact = self._read(path)
            except ArtifactIOError as e:
                logger.warning("Skipping malformed artifact %s: %s", path.name, e)
                continue
            if artifact.proof_id != m.group(1):
                logger.warning("Skipping %s: proof_id %s does not match file name",
                               path.name, artifact.proof_id)
                continue
            ids.append(artifact.proof_id)
        return sorted(ids)

    def _read(self, path: Path) -> ProofArtifact:
        try:
            with open(path) as f:
                data = json.load(f)
            return ProofArtifact.from_dict(data)
        except OSError as e:
            raise ArtifactIOError(str(path), str(e)) from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ArtifactIOError(str(path), f"malformed artifact: {e}") from e

    def load(self, proof_id: str) -> ProofArtifact:
        return self._read(self.proof_path(proof_id))

    def exists(self, proof_id: str) -> bool:
        return self.proof_path(proof_id).is_file()

    # ── Project metadata ──

    def persist_project(self, metadata: ProjectMetadata,
                        timestamp_ms: Optional[int] = None) -> Path:
        """Timestamp-keyed record, independent of any proof_id."""
        ts = int(time.time() * 1000) if timestamp_ms is None else timestamp_ms
        with self._lock:
            path = self.projects_dir / f"project_{ts}.json"
            while path.exists():
                ts += 1
                path = self.projects_dir / f"project_{ts}.json"
            self._write(path, json.dumps(metadata.to_dict(), indent=2) + "\n")
        logger.info("Persisted project metadata for %s to %s", metadata.domain, path)
        return path

    def list_projects(self) -> list[ProjectMetadata]:
        if not self.projects_dir.is_dir():
            return []
        records = []
        for path in sorted(self.projects_dir.iterdir()):
            if not _PROJECT_FILE_RE.match(path.name):
                continue
            try:
                with open(path) as f:
                    records.append(ProjectMetadata.from_dict(json.load(f)))
            except (OSError, ValueError, TypeError) as e:
                logger.warning("Skipping malformed project record %s: %s", path.name, e)
        return records


__all__ = ["ArtifactStore"]
