"""
proofanchor.witness — Fixed-shape witness records for the attestation circuit.

Commitments are XOR bindings against a random salt, so the circuit can check
consistency without the raw fields being revealed:

    domain_hash               = domain_name[:32] ^ salt
    certificate_validity_hash = certificate_serial ^ sha256(issuer) ^ sha256(public_key)

XOR is self-inverse: ``domain_hash ^ salt`` gives back the first 32 bytes of
the encoded domain name.

Oversize inputs (domain names beyond 64 bytes, serials beyond 32) are
truncated when encoded. This is lossy and part of the witness file contract.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import nacl.utils

from .errors import ValidationError
from .inspector import DomainInspector, TlsCertificate, TransparencySignals
from .scoring import ScoringEngine

logger = logging.getLogger(__name__)

HASH_LEN = 32
DOMAIN_NAME_LEN = 64
SALT_LEN = 32
MAX_TRANSPARENCY_SCORE = 100
MAX_RISK_LEVEL = 10

BYTE_FIELDS = {
    "domain_hash": HASH_LEN,
    "certificate_validity_hash": HASH_LEN,
    "domain_name": DOMAIN_NAME_LEN,
    "certificate_serial": HASH_LEN,
    "issuer_hash": HASH_LEN,
    "public_key_hash": HASH_LEN,
    "salt": SALT_LEN,
}

# Declaration order; validation reports the first violation in this order.
FIELD_ORDER = (
    "domain_hash",
    "certificate_validity_hash",
    "transparency_score",
    "risk_level",
    "verification_timestamp",
    "domain_name",
    "certificate_serial",
    "issuer_hash",
    "expiry_date",
    "public_key_hash",
    "salt",
)


# ─── Byte helpers ──────────────────────────────────────────────────

def fixed_bytes(data: bytes, length: int) -> bytes:
    """Truncate or zero-pad to exactly ``length`` bytes."""
    return data[:length].ljust(length, b"\x00")


def xor_bytes(*parts: bytes) -> bytes:
    length = len(parts[0])
    if any(len(p) != length for p in parts):
        raise ValueError("xor operands must have equal length")
    out = bytearray(length)
    for part in parts:
        for i, b in enumerate(part):
            out[i] ^= b
    return bytes(out)


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def encode_domain_name(domain: str) -> bytes:
    return fixed_bytes(domain.encode("utf-8"), DOMAIN_NAME_LEN)


def generate_salt() -> bytes:
    return nacl.utils.random(SALT_LEN)


# ─── Witness record ────────────────────────────────────────────────

@dataclass(frozen=True)
class WitnessRecord:
    domain_hash: bytes
    certificate_validity_hash: bytes
    transparency_score: int
    risk_level: int
    verification_timestamp: int
    domain_name: bytes
    certificate_serial: bytes
    issuer_hash: bytes
    expiry_date: int
    public_key_hash: bytes
    salt: bytes

    def validate(self) -> "WitnessRecord":
        validate(self)
        return self

    @property
    def domain(self) -> str:
        """Decoded domain name (zero padding stripped)."""
        return self.domain_name.rstrip(b"\x00").decode("utf-8", errors="replace")

    def to_dict(self) -> dict:
        """Witness file form: byte fields as integer arrays."""
        out = {}
        for name in FIELD_ORDER:
            value = getattr(self, name)
            out[name] = list(value) if isinstance(value, bytes) else value
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "WitnessRecord":
        """Parse and validate a witness file object."""
        values = {}
        for name in FIELD_ORDER:
            if name not in data:
                raise ValidationError(name, "missing")
            raw = data[name]
            if name in BYTE_FIELDS:
                values[name] = _parse_byte_array(name, raw)
            else:
                if isinstance(raw, bool) or not isinstance(raw, int):
                    raise ValidationError(name, f"expected an integer, got {raw!r}")
                values[name] = raw
        return validate(cls(**values))


def _parse_byte_array(name: str, raw) -> bytes:
    if not isinstance(raw, list):
        raise ValidationError(name, "expected an array of bytes")
    for item in raw:
        if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= 255:
            raise ValidationError(name, f"element {item!r} is not a byte")
    return bytes(raw)


def validate(witness: WitnessRecord) -> WitnessRecord:
    """Raise ValidationError naming the first violated field; return the witness otherwise."""
    for name in FIELD_ORDER:
        value = getattr(witness, name)
        if name in BYTE_FIELDS:
            expected = BYTE_FIELDS[name]
            if not isinstance(value, (bytes, bytearray)):
                raise ValidationError(name, "expected bytes")
            if len(value) != expected:
                raise ValidationError(name, f"expected {expected} bytes, got {len(value)}")
        elif name == "transparency_score":
            if not 0 <= value <= MAX_TRANSPARENCY_SCORE:
                raise ValidationError(name, f"{value} outside 0..{MAX_TRANSPARENCY_SCORE}")
        elif name == "risk_level":
            if not 0 <= value <= MAX_RISK_LEVEL:
                raise ValidationError(name, f"{value} outside 0..{MAX_RISK_LEVEL}")
        elif name == "verification_timestamp":
            if value >= witness.expiry_date:
                raise ValidationError(
                    name, f"{value} is not before expiry_date {witness.expiry_date}"
                )
    return witness


def reveal_domain_window(witness: WitnessRecord) -> bytes:
    """Undo the domain commitment: the first 32 bytes of ``domain_name``."""
    return xor_bytes(witness.domain_hash, witness.salt)


def save_witness(witness: WitnessRecord, path: str) -> None:
    validate(witness)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(witness.to_dict(), f, indent=2)
    logger.info("Wrote witness to %s", path)


def load_witness(path: str) -> WitnessRecord:
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError("witness", f"not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("witness", "expected a JSON object")
    return WitnessRecord.from_dict(data)


# ─── Builder ───────────────────────────────────────────────────────

class WitnessBuilder:
    """Assembles witness records from inspector output."""

    def __init__(self, inspector: Optional[DomainInspector] = None,
                 engine: Optional[ScoringEngine] = None):
        self.inspector = inspector
        if engine is None:
            classifier = inspector.classifier if inspector is not None else None
            engine = ScoringEngine(classifier)
        self.engine = engine

    def build(self, certificate: TlsCertificate, signals: TransparencySignals,
              salt: Optional[bytes] = None) -> WitnessRecord:
        score, risk = self.engine.calculate_scores(signals, certificate)
        salt = generate_salt() if salt is None else salt
        if len(salt) != SALT_LEN:
            raise ValidationError("salt", f"expected {SALT_LEN} bytes, got {len(salt)}")

        domain_name = encode_domain_name(certificate.domain)
        serial = fixed_bytes(certificate.serial_number, HASH_LEN)
        issuer_hash = sha256(certificate.issuer.encode("utf-8"))
        public_key_hash = sha256(certificate.public_key)

        witness = WitnessRecord(
            domain_hash=xor_bytes(domain_name[:HASH_LEN], salt),
            certificate_validity_hash=xor_bytes(serial, issuer_hash, public_key_hash),
            transparency_score=score,
            risk_level=risk,
            verification_timestamp=certificate.verification_timestamp,
            domain_name=domain_name,
            certificate_serial=serial,
            issuer_hash=issuer_hash,
            expiry_date=certificate.not_after,
            public_key_hash=public_key_hash,
            salt=salt,
        )
        logger.info("Built witness for %s (score=%d, risk=%d)", certificate.domain, score, risk)
        return validate(witness)

    async def build_from_live(self, domain: str) -> WitnessRecord:
        if self.inspector is None:
            raise RuntimeError("build_from_live requires a DomainInspector")
        report = await self.inspector.inspect(domain)
        return self.build(report.certificate, report.signals)


__all__ = [
    "WitnessRecord",
    "WitnessBuilder",
    "validate",
    "reveal_domain_window",
    "save_witness",
    "load_witness",
    "fixed_bytes",
    "xor_bytes",
    "encode_domain_name",
    "generate_salt",
]
