"""Tests for proofanchor.inspector — TLS and transparency checks (HTTP mocked with respx)."""

from datetime import datetime, timezone

import httpx
import pytest
import respx

from proofanchor.config import Settings
from proofanchor.inspector import (
    DomainInspector,
    TransparencySignals,
    _parse_timestamp,
    candidate_usernames,
    code_review_score,
    infer_issuer,
    repo_links,
)

GITHUB = "https://api.github.com/repos"
NOW = 1_760_000_000
DAY = 86400


def _not_found(router):
    """Everything not routed explicitly answers 404."""
    router.route().mock(return_value=httpx.Response(404))


def _recent_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture
def inspector(offline_settings):
    return DomainInspector(offline_settings)


# ─── Pure helpers ──────────────────────────────────────────────────

class TestHelpers:
    def test_candidate_usernames(self):
        assert candidate_usernames("acme.com") == ["acme"]
        assert candidate_usernames("my.project.com") == ["my-project", "myproject", "my"]
        assert candidate_usernames("acme.io") == ["acme-io", "acmeio", "acme"]

    def test_repo_links_dedup_and_strip_git(self):
        html = (
            '<a href="https://github.com/acme/widget.git">src</a>'
            '<a href="https://github.com/acme/widget">again</a>'
            '<a href="https://github.com/acme/docs">docs</a>'
        )
        assert repo_links(html) == ["acme/widget", "acme/docs"]

    def test_infer_issuer(self):
        assert infer_issuer("example.org", "nginx/1.25") == "Let's Encrypt"
        assert infer_issuer("example.org", "Apache") == "Let's Encrypt"
        assert infer_issuer("www.google.com", "gws") == "DigiCert"
        assert infer_issuer("example.org", "") == "trusted CA"

    def test_parse_timestamp(self):
        assert _parse_timestamp("1970-01-02T00:00:00Z") == DAY
        assert _parse_timestamp(12345) == 12345
        assert _parse_timestamp("not a date") is None
        assert _parse_timestamp(None) is None

    def test_code_review_score_baseline(self):
        assert code_review_score({}, now=NOW) == 20

    def test_code_review_score_full(self):
        repo = {
            "stargazers_count": 5000,
            "forks_count": 500,
            "updated_at": NOW - 5 * DAY,
            "license": {"name": "MIT License"},
            "description": "Widgets",
        }
        assert code_review_score(repo, now=NOW) == 90

    def test_code_review_score_tiers(self):
        repo = {"stargazers_count": 50, "forks_count": 5, "updated_at": NOW - 200 * DAY}
        assert code_review_score(repo, now=NOW) == 20 + 10 + 5 + 5

    @pytest.mark.parametrize("days,bonus", [
        (0, 15), (30, 15), (31, 10), (90, 10), (91, 5), (365, 5), (366, 0),
    ])
    def test_code_review_score_recency_boundaries(self, days, bonus):
        repo = {"updated_at": NOW - days * DAY}
        assert code_review_score(repo, now=NOW) == 20 + bonus

    def test_code_review_score_partial_day_rounds_down(self):
        repo = {"updated_at": NOW - 30 * DAY - DAY // 2}
        assert code_review_score(repo, now=NOW) == 20 + 15


# ─── Certificate ───────────────────────────────────────────────────

class TestCertificate:
    @pytest.mark.asyncio
    async def test_live_connection(self, inspector):
        with respx.mock(assert_all_called=False) as router:
            router.get("https://example.org/").mock(
                return_value=httpx.Response(200, text="hi", headers={"Server": "nginx"})
            )
            _not_found(router)
            cert = await inspector.fetch_certificate("https://Example.org/")

        assert cert.domain == "example.org"
        assert cert.is_valid is True
        assert cert.issuer == "Let's Encrypt"
        assert cert.public_key == b"live_key_example.org"
        assert cert.not_before < cert.verification_timestamp < cert.not_after
        assert cert.validity_days == 455

    @pytest.mark.asyncio
    async def test_fallback_trusted(self, inspector):
        with respx.mock(assert_all_called=False) as router:
            router.route().mock(side_effect=httpx.ConnectError("unreachable"))
            cert = await inspector.fetch_certificate("github.com")

        assert cert.issuer == "trusted CA"
        assert cert.is_valid is True
        assert cert.public_key == b"fallback_key_github.com"

    @pytest.mark.asyncio
    async def test_fallback_untrusted(self, inspector):
        with respx.mock(assert_all_called=False) as router:
            router.route().mock(side_effect=httpx.ConnectError("unreachable"))
            cert = await inspector.fetch_certificate("unknown-site.example")

        assert cert.issuer == "unknown CA"
        assert cert.is_valid is False

    @pytest.mark.asyncio
    async def test_transient_error_retried(self, offline_settings):
        offline_settings.http_retries = 2
        inspector = DomainInspector(offline_settings)
        with respx.mock(assert_all_called=False) as router:
            route = router.get("https://example.org/").mock(side_effect=[
                httpx.ConnectError("reset"),
                httpx.Response(200, text="ok"),
            ])
            cert = await inspector.fetch_certificate("example.org")

        assert route.call_count == 2
        assert cert.is_valid is True
        assert cert.public_key.startswith(b"live_key_")

    @pytest.mark.asyncio
    async def test_retries_exhausted_falls_back(self, offline_settings):
        offline_settings.http_retries = 1
        inspector = DomainInspector(offline_settings)
        with respx.mock(assert_all_called=False) as router:
            route = router.get("https://example.org/").mock(
                side_effect=httpx.ConnectError("down")
            )
            cert = await inspector.fetch_certificate("example.org")

        assert route.call_count == 2
        assert cert.issuer == "unknown CA"


# ─── Transparency ──────────────────────────────────────────────────

class TestTransparency:
    @pytest.mark.asyncio
    async def test_linked_repository_and_signal_checks(self, inspector):
        html = '<html><a href="https://github.com/acme/widget">code</a> Our roadmap for 2026</html>'
        repo = {
            "stargazers_count": 150,
            "forks_count": 20,
            "updated_at": _recent_iso(),
            "license": {"name": "MIT License"},
            "description": "Widget toolkit",
        }
        with respx.mock(assert_all_called=False) as router:
            router.get("https://example.org/").mock(return_value=httpx.Response(200, text=html))
            router.get(f"{GITHUB}/acme/widget").mock(return_value=httpx.Response(200, json=repo))
            router.head("https://example.org/audits").mock(return_value=httpx.Response(200))
            _not_found(router)
            signals = await inspector.analyze_transparency("example.org")

        assert signals.has_public_github is True
        assert signals.repository == "acme/widget"
        assert signals.github_stars == 150
        assert signals.github_forks == 20
        assert signals.license == "MIT License"
        assert signals.code_review_score == 80
        assert signals.has_documented_roadmap is True
        assert signals.has_audit_reports is True
        assert signals.has_team_verification is False
        assert signals.has_token_economics is False

    @pytest.mark.asyncio
    async def test_repository_by_naming_convention(self, inspector):
        with respx.mock(assert_all_called=False) as router:
            router.get(f"{GITHUB}/acme/acme").mock(
                return_value=httpx.Response(200, json={"stargazers_count": 3})
            )
            _not_found(router)
            signals = await inspector.analyze_transparency("acme.io")

        assert signals.has_public_github is True
        assert signals.repository == "acme/acme"
        assert signals.github_stars == 3

    @pytest.mark.asyncio
    async def test_github_pages_repository(self, inspector):
        with respx.mock(assert_all_called=False) as router:
            route = router.get(f"{GITHUB}/alice/alice.github.io").mock(
                return_value=httpx.Response(200, json={"stargazers_count": 1})
            )
            _not_found(router)
            signals = await inspector.analyze_transparency("alice.github.io")

        assert route.called
        assert signals.repository == "alice/alice.github.io"

    @pytest.mark.asyncio
    async def test_github_token_sent(self, offline_settings):
        offline_settings.github_token = "ghp_test"
        inspector = DomainInspector(offline_settings)
        with respx.mock(assert_all_called=False) as router:
            route = router.get(f"{GITHUB}/acme/acme").mock(
                return_value=httpx.Response(200, json={})
            )
            _not_found(router)
            await inspector.analyze_transparency("acme.com")

        assert route.calls.last.request.headers["Authorization"] == "Bearer ghp_test"

    @pytest.mark.asyncio
    async def test_unreachable_domain_degrades_to_false(self, inspector):
        with respx.mock(assert_all_called=False) as router:
            router.route().mock(side_effect=httpx.ConnectError("unreachable"))
            signals = await inspector.analyze_transparency("nowhere.example")

        assert signals == TransparencySignals(domain="nowhere.example")

    @pytest.mark.asyncio
    async def test_keyword_fallback_only_on_ok_homepage(self, inspector):
        with respx.mock(assert_all_called=False) as router:
            router.get("https://example.org/").mock(
                return_value=httpx.Response(500, text="roadmap audit team tokenomics")
            )
            _not_found(router)
            signals = await inspector.analyze_transparency("example.org")

        assert not signals.has_documented_roadmap
        assert not signals.has_audit_reports
        assert not signals.has_team_verification
        assert not signals.has_token_economics


# ─── Full inspection ───────────────────────────────────────────────

class TestInspect:
    @pytest.mark.asyncio
    async def test_report(self, inspector):
        headers = {
            "Strict-Transport-Security": "max-age=63072000",
            "X-Frame-Options": "DENY",
            "Server": "nginx",
        }
        with respx.mock(assert_all_called=False) as router:
            router.get("https://example.org/").mock(
                return_value=httpx.Response(200, text="Guaranteed returns, join now", headers=headers)
            )
            _not_found(router)
            report = await inspector.inspect("example.org")

        assert report.domain == "example.org"
        assert report.homepage_reachable is True
        assert report.security_headers == ("strict-transport-security", "x-frame-options")
        assert report.high_risk_keywords == ("guaranteed returns",)
        assert report.certificate.is_valid is True
        assert report.signals.domain == "example.org"
        assert report.collected_at == report.certificate.verification_timestamp

    @pytest.mark.asyncio
    async def test_unreachable_report(self, inspector):
        with respx.mock(assert_all_called=False) as router:
            router.route().mock(side_effect=httpx.ConnectError("unreachable"))
            report = await inspector.inspect("unknown-site.example")

        assert report.homepage_reachable is False
        assert report.security_headers == ()
        assert report.high_risk_keywords == ()
        assert report.certificate.is_valid is False


def test_default_settings_from_env(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("PROOFANCHOR_HTTP_RETRIES", "0")
    inspector = DomainInspector(Settings.from_env())
    assert inspector.settings.http_retries == 0
    assert "Authorization" not in inspector._github_headers()
