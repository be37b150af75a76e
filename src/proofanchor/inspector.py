"""DomainInspector — TLS posture and transparency footprint of a domain.

Every check is independent and bounded by the configured timeout. A check
that fails degrades to ``False``/empty; nothing here aborts an inspection.
Certificate verification is never disabled.

Certificate fields are inferred, not parsed: a successful strict-TLS request
proves the chain validated, and the record is synthesized around that fact
(fixed validity window, issuer guessed from headers and domain).
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import httpx

from .classification import DomainClassifier, normalize_domain
from .config import Settings
from .errors import NetworkError

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
USER_AGENT = "proofanchor-inspector/1.0"
DAY = 24 * 60 * 60

CERT_LOOKBACK_DAYS = 365
CERT_LOOKAHEAD_DAYS = 90

REPO_LINK_RE = re.compile(r"github\.com/([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)")
MAX_PAGE_CANDIDATES = 5
REPO_NAME_PATTERNS = ("{user}", "main", "website", "site")

# signal name -> (conventional paths, homepage keywords)
SIGNAL_CHECKS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "has_documented_roadmap": (
        ("/roadmap", "/docs/roadmap", "/about/roadmap", "/plan", "/milestones", "/timeline"),
        ("roadmap", "milestone", "timeline", "development plan"),
    ),
    "has_audit_reports": (
        ("/audit", "/security/audit", "/audits", "/security", "/docs/security", "/reports/audit"),
        ("audit", "security audit", "certik", "consensys", "quantstamp"),
    ),
    "has_team_verification": (
        ("/team", "/about/team", "/about", "/leadership", "/founders", "/staff"),
        ("team", "founder", "ceo", "cto", "leadership"),
    ),
    "has_token_economics": (
        ("/tokenomics", "/token-economics", "/economics", "/whitepaper", "/token", "/docs/tokenomics"),
        ("tokenomics", "token economics", "whitepaper", "utility token"),
    ),
}

SECURITY_HEADERS = (
    "strict-transport-security",
    "content-security-policy",
    "x-content-type-options",
    "x-frame-options",
)

HIGH_RISK_KEYWORDS = (
    "guaranteed returns",
    "guaranteed profit",
    "double your",
    "risk-free",
    "100x",
    "presale bonus",
    "claim your airdrop",
    "send eth",
)


# ─── Records ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class TlsCertificate:
    domain: str
    issuer: str
    serial_number: bytes
    not_before: int
    not_after: int
    public_key: bytes
    is_valid: bool
    verification_timestamp: int

    @property
    def validity_days(self) -> int:
        return max(0, (self.not_after - self.not_before) // DAY)

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "issuer": self.issuer,
            "serial_number": self.serial_number.hex(),
            "not_before": self.not_before,
            "not_after": self.not_after,
            "public_key": self.public_key.hex(),
            "is_valid": self.is_valid,
            "verification_timestamp": self.verification_timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TlsCertificate":
        return cls(
            domain=data["domain"],
            issuer=data["issuer"],
            serial_number=bytes.fromhex(data["serial_number"]),
            not_before=int(data["not_before"]),
            not_after=int(data["not_after"]),
            public_key=bytes.fromhex(data["public_key"]),
            is_valid=bool(data["is_valid"]),
            verification_timestamp=int(data["verification_timestamp"]),
        )


@dataclass(frozen=True)
class TransparencySignals:
    domain: str
    has_public_github: bool = False
    has_documented_roadmap: bool = False
    has_audit_reports: bool = False
    has_team_verification: bool = False
    has_token_economics: bool = False
    repository: Optional[str] = None
    github_stars: int = 0
    github_forks: int = 0
    last_commit: Optional[int] = None
    license: Optional[str] = None
    code_review_score: int = 0

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "has_public_github": self.has_public_github,
            "has_documented_roadmap": self.has_documented_roadmap,
            "has_audit_reports": self.has_audit_reports,
            "has_team_verification": self.has_team_verification,
            "has_token_economics": self.has_token_economics,
            "repository": self.repository,
            "github_stars": self.github_stars,
            "github_forks": self.github_forks,
            "last_commit": self.last_commit,
            "license": self.license,
            "code_review_score": self.code_review_score,
        }


@dataclass(frozen=True)
class Homepage:
    status_code: int
    headers: dict[str, str]
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class DomainReport:
    """Everything one inspection observed."""
    domain: str
    certificate: TlsCertificate
    signals: TransparencySignals
    security_headers: tuple[str, ...] = ()
    high_risk_keywords: tuple[str, ...] = ()
    homepage_reachable: bool = False
    collected_at: int = field(default_factory=lambda: int(time.time()))


# ─── Pure helpers ──────────────────────────────────────────────────

def _parse_timestamp(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def code_review_score(repo: dict, now: Optional[int] = None) -> int:
    """Capped weighted sum over repository popularity, activity and hygiene."""
    now = int(time.time()) if now is None else now
    score = 20

    stars = int(repo.get("stargazers_count") or 0)
    if stars > 1000:
        score += 20
    elif stars > 100:
        score += 15
    elif stars > 10:
        score += 10

    forks = int(repo.get("forks_count") or 0)
    if forks > 100:
        score += 15
    elif forks > 10:
        score += 10
    elif forks > 1:
        score += 5

    updated = _parse_timestamp(repo.get("updated_at") or repo.get("pushed_at"))
    if updated is not None:
        days = (now - updated) // DAY
        if days <= 30:
            score += 15
        elif days <= 90:
            score += 10
        elif days <= 365:
            score += 5

    if repo.get("license"):
        score += 10
    if repo.get("description"):
        score += 10

    return min(score, 100)


def infer_issuer(domain: str, server_header: str) -> str:
    server = server_header.lower()
    if "nginx" in server or "apache" in server:
        return "Let's Encrypt"
    if "github.com" in domain or "google.com" in domain:
        return "DigiCert"
    return "trusted CA"


def candidate_usernames(domain: str) -> list[str]:
    """Common GitHub owner names derived from a domain, deduplicated in order."""
    stem = domain.replace(".com", "")
    names = [stem.replace(".", "-"), stem.replace(".", ""), domain.split(".")[0]]
    seen: list[str] = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return seen


def repo_links(html: str) -> list[str]:
    """``owner/repo`` slugs linked from a page, in document order."""
    slugs: list[str] = []
    for owner, repo in REPO_LINK_RE.findall(html):
        if repo.endswith(".git"):
            repo = repo[:-4]
        slug = f"{owner}/{repo}"
        if repo and slug not in slugs:
            slugs.append(slug)
    return slugs


def keywords_in(text: str, keywords) -> tuple[str, ...]:
    lowered = text.lower()
    return tuple(k for k in keywords if k.lower() in lowered)


# ─── Inspector ─────────────────────────────────────────────────────

class DomainInspector:
    """Fetches (or approximates) a certificate and transparency signals for a domain."""

    def __init__(self, settings: Optional[Settings] = None,
                 classifier: Optional[DomainClassifier] = None):
        self.settings = settings or Settings.from_env()
        self.classifier = classifier or self.settings.classifier

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.http_timeout,
            follow_redirects=True,
            verify=True,
            headers={"User-Agent": USER_AGENT},
        )

    def _github_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        return headers

    async def _request(self, client: httpx.AsyncClient, method: str, url: str,
                       **kwargs) -> httpx.Response:
        """Issue a request, retrying transport errors with exponential backoff."""
        attempts = max(1, self.settings.http_retries + 1)
        last_error: Exception | None = None
        for attempt in range(attempts):
            try:
                return await client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                last_error = e
                if attempt + 1 < attempts:
                    delay = self.settings.http_backoff * (2 ** attempt)
                    logger.debug("%s %s failed (%s), retrying in %.1fs", method, url, e, delay)
                    await asyncio.sleep(delay)
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise NetworkError(url, str(e)) from e
        raise NetworkError(url, str(last_error))

    async def _get_homepage(self, client: httpx.AsyncClient, domain: str) -> Optional[Homepage]:
        url = f"https://{domain}/"
        try:
            resp = await self._request(client, "GET", url)
        except NetworkError as e:
            logger.warning("Homepage fetch failed for %s: %s", domain, e.reason)
            return None
        headers = {k.lower(): v for k, v in resp.headers.items()}
        return Homepage(status_code=resp.status_code, headers=headers, text=resp.text)

    # ── Certificate ──

    async def fetch_certificate(self, domain: str) -> TlsCertificate:
        domain = normalize_domain(domain)
        async with self._client() as client:
            homepage = await self._get_homepage(client, domain)
        return self._certificate(domain, homepage)

    def _certificate(self, domain: str, homepage: Optional[Homepage],
                     now: Optional[int] = None) -> TlsCertificate:
        now = int(time.time()) if now is None else now
        serial = f"{now:016x}".encode()
        not_before = now - CERT_LOOKBACK_DAYS * DAY
        not_after = now + CERT_LOOKAHEAD_DAYS * DAY

        if homepage is not None:
            issuer = infer_issuer(domain, homepage.headers.get("server", ""))
            logger.info("Live TLS connection to %s succeeded (issuer inferred: %s)", domain, issuer)
            return TlsCertificate(
                domain=domain,
                issuer=issuer,
                serial_number=serial,
                not_before=not_before,
                not_after=not_after,
                public_key=f"live_key_{domain}".encode(),
                is_valid=True,
                verification_timestamp=now,
            )

        trusted = self.classifier.is_trusted(domain)
        logger.info("Falling back to classification table for %s (trusted=%s)", domain, trusted)
        return TlsCertificate(
            domain=domain,
            issuer="trusted CA" if trusted else "unknown CA",
            serial_number=serial,
            not_before=not_before,
            not_after=not_after,
            public_key=f"fallback_key_{domain}".encode(),
            is_valid=trusted,
            verification_timestamp=now,
        )

    # ── Repository discovery ──

    async def _fetch_repo(self, client: httpx.AsyncClient, slug: str) -> Optional[dict]:
        try:
            resp = await self._request(
                client, "GET", f"{GITHUB_API}/repos/{slug}", headers=self._github_headers()
            )
        except NetworkError as e:
            logger.debug("GitHub lookup for %s failed: %s", slug, e.reason)
            return None
        if not resp.is_success:
            return None
        try:
            data = resp.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    async def _discover_repository(self, client: httpx.AsyncClient, domain: str,
                                   homepage: Optional[Homepage]) -> Optional[tuple[str, dict]]:
        """First matching repository wins; strategies run in a fixed order."""
        checked: set[str] = set()

        async def check(slug: str) -> Optional[tuple[str, dict]]:
            if slug in checked:
                return None
            checked.add(slug)
            data = await self._fetch_repo(client, slug)
            return (slug, data) if data is not None else None

        # 1. links on the homepage
        if homepage is not None and homepage.ok:
            for slug in repo_links(homepage.text)[:MAX_PAGE_CANDIDATES]:
                found = await check(slug)
                if found:
                    logger.info("Found repository %s linked from %s", slug, domain)
                    return found

        # 2. owner/repo naming conventions
        for user in candidate_usernames(domain):
            for pattern in REPO_NAME_PATTERNS:
                found = await check(f"{user}/{pattern.format(user=user)}")
                if found:
                    logger.info("Found repository %s by naming convention", found[0])
                    return found

        # 3. GitHub Pages hosting
        if domain.endswith(".github.io"):
            user = domain[: -len(".github.io")]
            for slug in (f"{user}/{domain}", f"{user}/{user}"):
                found = await check(slug)
                if found:
                    logger.info("Found GitHub Pages repository %s", slug)
                    return found

        logger.info("No repository found for %s", domain)
        return None

    # ── Transparency flags ──

    async def _check_signal(self, client: httpx.AsyncClient, domain: str,
                            homepage: Optional[Homepage],
                            paths: tuple[str, ...], keywords: tuple[str, ...]) -> bool:
        for path in paths:
            try:
                resp = await self._request(client, "HEAD", f"https://{domain}{path}")
            except NetworkError:
                continue
            if resp.is_success:
                return True
        if homepage is not None and homepage.ok:
            return bool(keywords_in(homepage.text, keywords))
        return False

    async def _analyze(self, client: httpx.AsyncClient, domain: str,
                       homepage: Optional[Homepage]) -> TransparencySignals:
        checks = [
            self._check_signal(client, domain, homepage, paths, keywords)
            for paths, keywords in SIGNAL_CHECKS.values()
        ]
        results = await asyncio.gather(
            self._discover_repository(client, domain, homepage), *checks,
            return_exceptions=True,
        )

        repo_result, flag_results = results[0], results[1:]
        if isinstance(repo_result, BaseException):
            logger.warning("Repository discovery failed for %s: %s", domain, repo_result)
            repo_result = None

        flags: dict[str, bool] = {}
        for name, result in zip(SIGNAL_CHECKS, flag_results):
            if isinstance(result, BaseException):
                logger.warning("Check %s failed for %s: %s", name, domain, result)
                result = False
            flags[name] = bool(result)

        if repo_result is None:
            return TransparencySignals(domain=domain, **flags)

        slug, repo = repo_result
        license_info = repo.get("license")
        return TransparencySignals(
            domain=domain,
            has_public_github=True,
            repository=slug,
            github_stars=int(repo.get("stargazers_count") or 0),
            github_forks=int(repo.get("forks_count") or 0),
            last_commit=_parse_timestamp(repo.get("updated_at") or repo.get("pushed_at")),
            license=license_info.get("name") if isinstance(license_info, dict) else None,
            code_review_score=code_review_score(repo),
            **flags,
        )

    async def analyze_transparency(self, domain: str) -> TransparencySignals:
        domain = normalize_domain(domain)
        async with self._client() as client:
            homepage = await self._get_homepage(client, domain)
            return await self._analyze(client, domain, homepage)

    # ── Full inspection ──

    async def inspect(self, domain: str) -> DomainReport:
        """Certificate, transparency signals and page metadata from one homepage fetch."""
        domain = normalize_domain(domain)
        logger.info("Inspecting %s", domain)
        async with self._client() as client:
            homepage = await self._get_homepage(client, domain)
            certificate = self._certificate(domain, homepage)
            signals = await self._analyze(client, domain, homepage)

        security_headers: tuple[str, ...] = ()
        risky: tuple[str, ...] = ()
        if homepage is not None:
            security_headers = tuple(h for h in SECURITY_HEADERS if h in homepage.headers)
            if homepage.ok:
                risky = keywords_in(homepage.text, HIGH_RISK_KEYWORDS)

        return DomainReport(
            domain=domain,
            certificate=certificate,
            signals=signals,
            security_headers=security_headers,
            high_risk_keywords=risky,
            homepage_reachable=homepage is not None,
            collected_at=certificate.verification_timestamp,
        )


__all__ = [
    "TlsCertificate",
    "TransparencySignals",
    "DomainReport",
    "DomainInspector",
    "code_review_score",
    "candidate_usernames",
    "repo_links",
    "infer_issuer",
]
