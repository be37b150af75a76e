"""
proofanchor.classification — Pattern table mapping domains to trust classifications.

Two classifications are consulted by the pipeline:
  trusted      — certificate fallback treats the domain as served by a trusted CA
  established  — scoring grants the established-company baseline

Rules are data, not code: the default table below can be replaced wholesale
by a JSON file (see ``DomainClassifier.from_file``).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

TRUSTED = "trusted"
ESTABLISHED = "established"


class MatchKind(Enum):
    EXACT = "exact"
    SUFFIX = "suffix"
    SUBSTRING = "substring"


def normalize_domain(domain: str) -> str:
    """Strip scheme, path, port and trailing dot; lower-case."""
    value = domain.strip().lower()
    if "://" in value:
        value = value.split("://", 1)[1]
    value = value.split("/", 1)[0]
    value = value.split("?", 1)[0]
    if value.count(":") == 1:
        value = value.split(":", 1)[0]
    return value.rstrip(".")


@dataclass(frozen=True)
class ClassificationRule:
    pattern: str
    match: MatchKind
    classification: str

    def matches(self, domain: str) -> bool:
        pattern = self.pattern.lower()
        if self.match is MatchKind.EXACT:
            return domain == pattern
        if self.match is MatchKind.SUFFIX:
            return domain == pattern or domain.endswith("." + pattern)
        return pattern in domain

    def to_dict(self) -> dict:
        return {
            "pattern": self.pattern,
            "match": self.match.value,
            "classification": self.classification,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClassificationRule":
        return cls(
            pattern=data["pattern"],
            match=MatchKind(data.get("match", MatchKind.SUFFIX.value)),
            classification=data["classification"],
        )


# ─── Default table ─────────────────────────────────────────────────

_TRUSTED_DOMAINS = (
    "github.com", "google.com", "microsoft.com", "apple.com",
    "amazon.com", "facebook.com", "twitter.com", "linkedin.com",
    "stackoverflow.com", "reddit.com", "youtube.com",
)

_ESTABLISHED_DOMAINS = (
    # Tech
    "google.com", "microsoft.com", "apple.com", "amazon.com", "facebook.com",
    "twitter.com", "linkedin.com", "youtube.com", "instagram.com", "whatsapp.com",
    "netflix.com", "spotify.com", "uber.com", "airbnb.com", "tesla.com",
    # Finance
    "paypal.com", "stripe.com", "visa.com", "mastercard.com", "americanexpress.com",
    "wellsfargo.com", "chase.com", "bankofamerica.com", "citibank.com",
    # Commerce and services
    "ebay.com", "etsy.com", "shopify.com", "square.com", "zoom.us", "slack.com",
    "dropbox.com", "salesforce.com", "adobe.com", "oracle.com", "ibm.com",
    # Media
    "cnn.com", "bbc.com", "reuters.com", "bloomberg.com", "forbes.com",
    "wikipedia.org", "reddit.com", "stackoverflow.com", "github.com",
    # Public sector and education TLDs
    "gov", "edu", "mil",
)


def default_rules() -> list[ClassificationRule]:
    """Built-in allowlists. Every rule matches the domain itself or a subdomain of it."""
    rules = [ClassificationRule(d, MatchKind.SUFFIX, TRUSTED) for d in _TRUSTED_DOMAINS]
    rules += [ClassificationRule(d, MatchKind.SUFFIX, ESTABLISHED) for d in _ESTABLISHED_DOMAINS]
    return rules


class DomainClassifier:
    """Evaluates a domain against an ordered rule table."""

    def __init__(self, rules: Optional[Iterable[ClassificationRule]] = None):
        self._rules = list(default_rules() if rules is None else rules)

    @property
    def rules(self) -> list[ClassificationRule]:
        return list(self._rules)

    def classify(self, domain: str) -> set[str]:
        name = normalize_domain(domain)
        return {r.classification for r in self._rules if r.matches(name)}

    def is_trusted(self, domain: str) -> bool:
        return TRUSTED in self.classify(domain)

    def is_established(self, domain: str) -> bool:
        return ESTABLISHED in self.classify(domain)

    def to_list(self) -> list[dict]:
        return [r.to_dict() for r in self._rules]

    @classmethod
    def from_file(cls, path: str) -> "DomainClassifier":
        """Load a rule table from a JSON list of rule objects."""
        with open(path) as f:
            data = json.load(f)
        rules = [ClassificationRule.from_dict(item) for item in data]
        logger.info("Loaded %d classification rules from %s", len(rules), path)
        return cls(rules)

    def save(self, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_list(), f, indent=2)


__all__ = [
    "TRUSTED",
    "ESTABLISHED",
    "MatchKind",
    "ClassificationRule",
    "DomainClassifier",
    "default_rules",
    "normalize_domain",
]
