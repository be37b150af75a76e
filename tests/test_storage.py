"""Tests for proofanchor.storage — artifact and project persistence."""

import json

import pytest

from proofanchor.errors import ArtifactIOError
from proofanchor.orchestrator import ProofArtifact, ProofMetadata, compute_proof_id
from proofanchor.scoring import ProjectMetadata
from proofanchor.storage import ArtifactStore


# ─── Helpers ───────────────────────────────────────────────────────

def make_artifact(proof: bytes = b"\xde\xad\xbe\xef", timestamp: int = 1_760_000_000) -> ProofArtifact:
    return ProofArtifact(
        proof=proof,
        public_inputs=("domain_hash", "transparency_score"),
        verification_key="",
        timestamp=timestamp,
        proof_id=compute_proof_id(proof, bytes(32), timestamp),
        metadata=ProofMetadata(generation_time_ms=12, entropy_sum=528),
    )


@pytest.fixture
def store(tmp_path):
    return ArtifactStore(str(tmp_path / "proofs"))


# ─── Proof artifacts ───────────────────────────────────────────────

class TestArtifacts:
    def test_persist_writes_three_files(self, store):
        artifact = make_artifact()
        path = store.persist(artifact)

        assert path == store.proof_path(artifact.proof_id)
        assert path.name == f"proof_{artifact.proof_id}.json"
        assert store.ledger_path(artifact.proof_id).is_file()
        assert store.metadata_path(artifact.proof_id).is_file()

    def test_ledger_form_is_single_line(self, store):
        artifact = make_artifact()
        store.persist(artifact)
        text = store.ledger_path(artifact.proof_id).read_text()
        assert "\n" not in text
        assert json.loads(text)["proof_id"] == artifact.proof_id

    def test_metadata_extract(self, store):
        artifact = make_artifact()
        store.persist(artifact)
        meta = json.loads(store.metadata_path(artifact.proof_id).read_text())
        assert meta["proof_id"] == artifact.proof_id
        assert meta["entropy_sum"] == 528
        assert meta["constraints_count"] == 2048

    def test_load_round_trip(self, store):
        artifact = make_artifact()
        store.persist(artifact)
        assert store.load(artifact.proof_id) == artifact
        assert store.exists(artifact.proof_id)

    def test_list_sorted(self, store):
        ids = []
        for i in range(3):
            artifact = make_artifact(proof=bytes([i + 1]) * 8, timestamp=1000 + i)
            store.persist(artifact)
            ids.append(artifact.proof_id)
        assert store.list() == sorted(ids)

    def test_list_empty_directory(self, store):
        assert store.list() == []

    def test_list_skips_malformed(self, store):
        good = make_artifact()
        store.persist(good)
        store.base_dir.joinpath("proof_0123456789abcdef.json").write_text("{broken")
        store.base_dir.joinpath("notes.txt").write_text("ignored")
        assert store.list() == [good.proof_id]

    def test_list_skips_mismatched_id(self, store):
        good = make_artifact()
        store.persist(good)
        data = good.to_dict()
        store.base_dir.joinpath("proof_ffffffffffffffff.json").write_text(json.dumps(data))
        assert store.list() == [good.proof_id]

    def test_load_missing(self, store):
        with pytest.raises(ArtifactIOError):
            store.load("0000000000000000")
        assert not store.exists("0000000000000000")

    def test_load_malformed(self, store):
        store.base_dir.mkdir(parents=True)
        store.proof_path("0123456789abcdef").write_text(json.dumps({"proof": "zz"}))
        with pytest.raises(ArtifactIOError):
            store.load("0123456789abcdef")

    def test_write_failure(self, tmp_path):
        blocker = tmp_path / "proofs"
        blocker.write_text("a file, not a directory")
        with pytest.raises(ArtifactIOError):
            ArtifactStore(str(blocker)).persist(make_artifact())


# ─── Project metadata ──────────────────────────────────────────────

class TestProjects:
    def test_persist_and_list(self, store):
        metadata = ProjectMetadata(domain="example.org", transparency_score=70, collected_at=5)
        path = store.persist_project(metadata, timestamp_ms=1_760_000_000_000)
        assert path.name == "project_1760000000000.json"
        assert store.list_projects() == [metadata]

    def test_timestamp_collision(self, store):
        first = store.persist_project(ProjectMetadata(domain="a.org", collected_at=1), timestamp_ms=42)
        second = store.persist_project(ProjectMetadata(domain="b.org", collected_at=2), timestamp_ms=42)
        assert first.name == "project_42.json"
        assert second.name == "project_43.json"
        assert [m.domain for m in store.list_projects()] == ["a.org", "b.org"]

    def test_list_projects_skips_malformed(self, store):
        store.persist_project(ProjectMetadata(domain="a.org", collected_at=1), timestamp_ms=1)
        store.projects_dir.joinpath("project_2.json").write_text("[")
        assert [m.domain for m in store.list_projects()] == ["a.org"]
