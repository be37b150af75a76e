"""
Scoring Engine — transparency score, risk level and legitimacy verdict.

Transparency score (0-100) and risk level (0-10) branch on the
established-company classification:

  established   score 85 + 5 per {public repo, team, audits}; risk 1
                invalid certificate: risk +3, score -15
  otherwise     score = 25 github + 20 roadmap + 25 audits + 15 team + 15 token
                        + min(stars // 100, 10) + code_review // 4
                risk  = 5 invalid cert + 2 starless repo + 3 weak review
                        + 2 short certificate window

Legitimacy:

  subtotal = 20 github + 15 roadmap + 25 audits + 20 team + 20 token
  net      = max(0, subtotal - 15 × risk_factors)
  legit    = net >= 60 and risk_factors <= 2

Everything here is a pure function of its inputs.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Optional

from .classification import DomainClassifier, normalize_domain
from .inspector import DomainReport, TlsCertificate, TransparencySignals

SHORT_CERT_WINDOW_DAYS = 30

ESTABLISHED_BASE_SCORE = 85
ESTABLISHED_BASE_RISK = 1

SCORE_WEIGHTS = {
    "has_public_github": 25,
    "has_documented_roadmap": 20,
    "has_audit_reports": 25,
    "has_team_verification": 15,
    "has_token_economics": 15,
}

LEGITIMACY_WEIGHTS = {
    "has_public_github": 20,
    "has_documented_roadmap": 15,
    "has_audit_reports": 25,
    "has_team_verification": 20,
    "has_token_economics": 20,
}

INDICATOR_LABELS = {
    "has_public_github": "Public code repository",
    "has_documented_roadmap": "Documented roadmap",
    "has_audit_reports": "Security audit reports",
    "has_team_verification": "Verified team",
    "has_token_economics": "Published token economics",
}

RISK_FACTOR_PENALTY = 15
LEGITIMATE_THRESHOLD = 60
HIGHLY_LEGITIMATE_THRESHOLD = 80
MAX_TOLERATED_RISK_FACTORS = 2
HIGH_RISK_FACTOR_COUNT = 3

HIGHLY_LEGITIMATE = "HIGHLY LEGITIMATE"
LEGITIMATE = "LEGITIMATE"
SUSPICIOUS = "SUSPICIOUS"
HIGH_RISK = "HIGH RISK"

RECOMMENDATIONS = {
    HIGHLY_LEGITIMATE: "Strong transparency indicators with minimal risk factors",
    LEGITIMATE: "Good transparency indicators with some areas for improvement",
    SUSPICIOUS: "Weak transparency or several risk factors, proceed with caution",
    HIGH_RISK: "Multiple risk factors and little transparency, avoid interacting",
}

RISK_SUSPICIOUS_DOMAIN = "Suspicious domain pattern"
RISK_HIGH_RISK_KEYWORDS = "High-risk keywords on homepage"
RISK_UNUSUAL_ISSUER = "Unusual certificate issuer"
RISK_SHORT_VALIDITY = "Certificate validity under 30 days"
RISK_MISSING_HEADERS = "Missing security headers"

SUSPICIOUS_TLDS = ("xyz", "top", "tk", "ml", "ga", "cf", "gq", "click", "loan", "work", "zip")
KNOWN_ISSUERS = (
    "let's encrypt", "isrg", "digicert", "trusted ca", "sectigo", "comodo",
    "globalsign", "google trust services", "amazon", "cloudflare", "godaddy", "entrust",
)
MIN_SECURITY_HEADERS = 2

_IP_RE = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")
_LONG_DIGITS_RE = re.compile(r"\d{4,}")


def recommendation_label(recommendation: str) -> str:
    return recommendation.split(" - ", 1)[0]


# ─── Records ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class ProjectMetadata:
    """Observed facts about a project, as reviewed by the community."""
    domain: str
    has_public_github: bool = False
    has_documented_roadmap: bool = False
    has_audit_reports: bool = False
    has_team_verification: bool = False
    has_token_economics: bool = False
    code_review_score: int = 0
    github_stars: int = 0
    certificate_issuer: str = ""
    certificate_valid: bool = False
    certificate_validity_days: int = 0
    security_headers: tuple[str, ...] = ()
    high_risk_keywords: tuple[str, ...] = ()
    transparency_score: int = 0
    risk_level: int = 0
    collected_at: int = field(default_factory=lambda: int(time.time()))

    @classmethod
    def from_report(cls, report: DomainReport, transparency_score: int = 0,
                    risk_level: int = 0) -> "ProjectMetadata":
        s, c = report.signals, report.certificate
        return cls(
            domain=report.domain,
            has_public_github=s.has_public_github,
            has_documented_roadmap=s.has_documented_roadmap,
            has_audit_reports=s.has_audit_reports,
            has_team_verification=s.has_team_verification,
            has_token_economics=s.has_token_economics,
            code_review_score=s.code_review_score,
            github_stars=s.github_stars,
            certificate_issuer=c.issuer,
            certificate_valid=c.is_valid,
            certificate_validity_days=c.validity_days,
            security_headers=tuple(report.security_headers),
            high_risk_keywords=tuple(report.high_risk_keywords),
            transparency_score=transparency_score,
            risk_level=risk_level,
            collected_at=report.collected_at,
        )

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "has_public_github": self.has_public_github,
            "has_documented_roadmap": self.has_documented_roadmap,
            "has_audit_reports": self.has_audit_reports,
            "has_team_verification": self.has_team_verification,
            "has_token_economics": self.has_token_economics,
            "code_review_score": self.code_review_score,
            "github_stars": self.github_stars,
            "certificate_issuer": self.certificate_issuer,
            "certificate_valid": self.certificate_valid,
            "certificate_validity_days": self.certificate_validity_days,
            "security_headers": list(self.security_headers),
            "high_risk_keywords": list(self.high_risk_keywords),
            "transparency_score": self.transparency_score,
            "risk_level": self.risk_level,
            "collected_at": self.collected_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectMetadata":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        known["security_headers"] = tuple(known.get("security_headers", ()))
        known["high_risk_keywords"] = tuple(known.get("high_risk_keywords", ()))
        return cls(**known)


@dataclass(frozen=True)
class LegitimacyAssessment:
    is_legitimate: bool
    confidence_score: int
    risk_factors: tuple[str, ...]
    transparency_indicators: tuple[str, ...]
    recommendation: str

    @property
    def label(self) -> str:
        return recommendation_label(self.recommendation)

    def to_dict(self) -> dict:
        return {
            "is_legitimate": self.is_legitimate,
            "confidence_score": self.confidence_score,
            "risk_factors": list(self.risk_factors),
            "transparency_indicators": list(self.transparency_indicators),
            "recommendation": self.recommendation,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LegitimacyAssessment":
        return cls(
            is_legitimate=bool(data["is_legitimate"]),
            confidence_score=int(data["confidence_score"]),
            risk_factors=tuple(data.get("risk_factors", ())),
            transparency_indicators=tuple(data.get("transparency_indicators", ())),
            recommendation=data["recommendation"],
        )


# ─── Heuristics ────────────────────────────────────────────────────

def is_suspicious_domain(domain: str) -> bool:
    name = normalize_domain(domain)
    if _IP_RE.match(name) or "xn--" in name:
        return True
    if name.count("-") >= 3 or _LONG_DIGITS_RE.search(name):
        return True
    return name.rsplit(".", 1)[-1] in SUSPICIOUS_TLDS


def is_unusual_issuer(issuer: str) -> bool:
    lowered = issuer.lower()
    return not any(known in lowered for known in KNOWN_ISSUERS)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


# ─── Engine ────────────────────────────────────────────────────────

class ScoringEngine:
    """Deterministic scoring over inspector output."""

    def __init__(self, classifier: Optional[DomainClassifier] = None):
        self.classifier = classifier or DomainClassifier()

    def calculate_scores(self, signals: TransparencySignals,
                         certificate: TlsCertificate) -> tuple[int, int]:
        """Return ``(transparency_score, risk_level)``."""
        if self.classifier.is_established(signals.domain):
            score = ESTABLISHED_BASE_SCORE
            risk = ESTABLISHED_BASE_RISK
            for flag in ("has_public_github", "has_team_verification", "has_audit_reports"):
                if getattr(signals, flag):
                    score += 5
            if not certificate.is_valid:
                risk += 3
                score -= 15
        else:
            score = sum(w for flag, w in SCORE_WEIGHTS.items() if getattr(signals, flag))
            score += min(signals.github_stars // 100, 10)
            score += signals.code_review_score // 4

            risk = 0
            if not certificate.is_valid:
                risk += 5
            if signals.has_public_github and signals.github_stars == 0:
                risk += 2
            if signals.code_review_score < 30:
                risk += 3
            if certificate.validity_days < SHORT_CERT_WINDOW_DAYS:
                risk += 2

        return _clamp(score, 0, 100), _clamp(risk, 0, 10)

    def risk_factors(self, metadata: ProjectMetadata) -> list[str]:
        factors = []
        if is_suspicious_domain(metadata.domain):
            factors.append(RISK_SUSPICIOUS_DOMAIN)
        if metadata.high_risk_keywords:
            factors.append(RISK_HIGH_RISK_KEYWORDS)
        if is_unusual_issuer(metadata.certificate_issuer):
            factors.append(RISK_UNUSUAL_ISSUER)
        if metadata.certificate_validity_days < SHORT_CERT_WINDOW_DAYS:
            factors.append(RISK_SHORT_VALIDITY)
        if len(metadata.security_headers) < MIN_SECURITY_HEADERS:
            factors.append(RISK_MISSING_HEADERS)
        return factors

    def assess_legitimacy(self, metadata: ProjectMetadata) -> LegitimacyAssessment:
        factors = self.risk_factors(metadata)
        indicators = [
            label for flag, label in INDICATOR_LABELS.items() if getattr(metadata, flag)
        ]

        subtotal = sum(w for flag, w in LEGITIMACY_WEIGHTS.items() if getattr(metadata, flag))
        net = max(0, subtotal - RISK_FACTOR_PENALTY * len(factors))

        is_legitimate = net >= LEGITIMATE_THRESHOLD and len(factors) <= MAX_TOLERATED_RISK_FACTORS
        confidence = net if is_legitimate else 100 - net

        if is_legitimate:
            label = HIGHLY_LEGITIMATE if net >= HIGHLY_LEGITIMATE_THRESHOLD else LEGITIMATE
        elif len(factors) > HIGH_RISK_FACTOR_COUNT:
            label = HIGH_RISK
        else:
            label = SUSPICIOUS

        return LegitimacyAssessment(
            is_legitimate=is_legitimate,
            confidence_score=_clamp(confidence, 0, 100),
            risk_factors=tuple(factors),
            transparency_indicators=tuple(indicators),
            recommendation=f"{label} - {RECOMMENDATIONS[label]}",
        )

    def metadata_for(self, report: DomainReport) -> ProjectMetadata:
        score, risk = self.calculate_scores(report.signals, report.certificate)
        return ProjectMetadata.from_report(report, transparency_score=score, risk_level=risk)


__all__ = [
    "ScoringEngine",
    "ProjectMetadata",
    "LegitimacyAssessment",
    "is_suspicious_domain",
    "is_unusual_issuer",
    "recommendation_label",
    "HIGHLY_LEGITIMATE",
    "LEGITIMATE",
    "SUSPICIOUS",
    "HIGH_RISK",
]
