#!/usr/bin/env python3
"""
proofanchor CLI — Domain transparency attestations from the command line.

Commands:
    prove   - Generate and verify a proof (live domain or witness file)
    verify  - Re-verify a persisted proof artifact
    list    - List persisted proof artifacts
    assess  - Inspect a domain and print its legitimacy assessment
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Optional

from proofanchor.errors import ProofAnchorError


def _output(data: dict, args: argparse.Namespace, human_fn=None):
    """Output data as JSON or pretty-printed."""
    if getattr(args, 'json', False):
        print(json.dumps(data, indent=2, default=str))
    elif human_fn:
        human_fn(data)
    else:
        print(json.dumps(data, indent=2, default=str))


def _settings(args: argparse.Namespace):
    from proofanchor.config import Settings

    settings = Settings.from_env()
    if getattr(args, 'artifact_dir', None):
        settings.artifact_dir = args.artifact_dir
    if getattr(args, 'circuit_dir', None):
        settings.circuit_dir = args.circuit_dir
        if "PROOFANCHOR_WITNESS_PATH" not in os.environ:
            settings.witness_path = os.path.join(args.circuit_dir, "witness", "input.json")
    return settings


# ─── Commands ──────────────────────────────────────────────────────

def cmd_prove(args):
    """Run the full pipeline for a live domain or a witness file."""
    from proofanchor.pipeline import AttestationPipeline

    settings = _settings(args)
    pipeline = AttestationPipeline.from_settings(settings)

    if args.real_data:
        if not args.domain:
            raise ProofAnchorError("--real-data requires a domain")
        result = asyncio.run(pipeline.run_live(args.domain))
    else:
        path = args.witness or settings.witness_path
        result = pipeline.run_from_file(path)

    data = result.to_dict()

    def human(d):
        v = d['verification']
        mark = "✅" if v['is_valid'] else "❌"
        print(f"{mark} Proof {d['proof_id']} for {d['domain']}")
        print(f"   Transparency: {d['transparency_score']}/100")
        print(f"   Risk level:   {d['risk_level']}/10")
        print(f"   Saved to:     {d['artifact_path']}")
        if v.get('assessment'):
            print(f"   Verdict:      {v['assessment']['recommendation']}")
        if v.get('error'):
            print(f"   Error:        {v['error']}")

    _output(data, args, human)
    return data


def cmd_verify(args):
    """Verify a persisted proof artifact again."""
    from proofanchor.orchestrator import ProofOrchestrator
    from proofanchor.storage import ArtifactStore

    settings = _settings(args)
    artifact = ArtifactStore(settings.artifact_dir).load(args.proof_id)
    outcome = ProofOrchestrator.from_settings(settings).verify_proof(artifact)
    data = {"proof_id": artifact.proof_id, **outcome.to_dict()}

    def human(d):
        if d['is_valid']:
            print(f"✅ VALID: {d['proof_id']} ({d['constraints_verified']} constraints)")
        else:
            print(f"❌ INVALID: {d['proof_id']}")
            if d['error']:
                print(f"   Reason: {d['error']}")

    _output(data, args, human)
    return data


def cmd_list(args):
    """List persisted proof ids."""
    from proofanchor.storage import ArtifactStore

    store = ArtifactStore(_settings(args).artifact_dir)
    ids = store.list()
    data = {"count": len(ids), "proof_ids": ids}

    def human(d):
        if not d['proof_ids']:
            print("No proofs found")
            return
        for proof_id in d['proof_ids']:
            print(proof_id)

    _output(data, args, human)
    return data


def cmd_assess(args):
    """Inspect a domain and print scores and the legitimacy verdict."""
    from proofanchor.inspector import DomainInspector
    from proofanchor.scoring import ScoringEngine

    settings = _settings(args)
    inspector = DomainInspector(settings)
    engine = ScoringEngine(inspector.classifier)

    report = asyncio.run(inspector.inspect(args.domain))
    metadata = engine.metadata_for(report)
    assessment = engine.assess_legitimacy(metadata)
    data = {"metadata": metadata.to_dict(), "assessment": assessment.to_dict()}

    def human(d):
        m, a = d['metadata'], d['assessment']
        print(f"🔍 {m['domain']}")
        print(f"   Transparency: {m['transparency_score']}/100")
        print(f"   Risk level:   {m['risk_level']}/10")
        print(f"   Verdict:      {a['recommendation']}")
        print(f"   Confidence:   {a['confidence_score']}")
        for indicator in a['transparency_indicators']:
            print(f"   + {indicator}")
        for factor in a['risk_factors']:
            print(f"   - {factor}")

    _output(data, args, human)
    return data


# ─── Parser ────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proofanchor",
        description="proofanchor — zkTLS transparency attestations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--json", action="store_true", help="Machine-readable JSON output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    parser.add_argument("--artifact-dir", help="Override PROOFANCHOR_ARTIFACT_DIR")
    parser.add_argument("--circuit-dir", help="Override PROOFANCHOR_CIRCUIT_DIR")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # prove
    p = sub.add_parser("prove", help="Generate and verify a proof")
    p.add_argument("domain", nargs="?", help="Domain to inspect (with --real-data)")
    p.add_argument("--real-data", action="store_true", help="Inspect the live domain")
    p.add_argument("-w", "--witness", help="Witness file (default PROOFANCHOR_WITNESS_PATH)")

    # verify
    p = sub.add_parser("verify", help="Verify a persisted proof")
    p.add_argument("proof_id", help="Proof id")

    # list
    sub.add_parser("list", help="List persisted proofs")

    # assess
    p = sub.add_parser("assess", help="Legitimacy assessment for a domain")
    p.add_argument("domain", help="Domain to inspect")

    return parser


def main(argv: Optional[list[str]] = None) -> Optional[dict]:
    """CLI entry point. Returns result dict for testing."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    commands = {
        "prove": cmd_prove,
        "verify": cmd_verify,
        "list": cmd_list,
        "assess": cmd_assess,
    }

    try:
        return commands[args.command](args)
    except FileNotFoundError as e:
        print(f"❌ File not found: {e}", file=sys.stderr)
        sys.exit(1)
    except ProofAnchorError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
