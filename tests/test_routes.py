import uuid

import pytest
from starlette.testclient import TestClient

from mailvet.api import RiskLevel
from mailvet.config import AppConfig
from mailvet.models import ValidationConfig
from mailvet.pipeline import ValidationPipeline
from mailvet.routes import SERVICE_VERSION, AppState, build_routes

DISPOSABLE_LIST = "tempmail.example\nthrowaway.example\n"


class FakeResolver:
    def __init__(self, a_domains=(), mx_domains=()):
        self.a_domains = set(a_domains)
        self.mx_domains = set(mx_domains)
        self.cleared = False

    async def has_a_records(self, domain):
        return domain in self.a_domains

    async def check_domain_records(self, domain):
        return domain in self.a_domains, domain in self.mx_domains

    async def get_spf_record(self, domain):
        return None

    async def get_dmarc_record(self, domain):
        return None

    async def get_common_dkim_records(self, domain):
        return []

    def clear_cache(self):
        self.cleared = True


@pytest.fixture
def resolver():
    return FakeResolver(a_domains={"example.com"}, mx_domains={"example.com"})


@pytest.fixture
def pipeline(resolver):
    return ValidationPipeline(
        ValidationConfig(enable_smtp_probe=False), DISPOSABLE_LIST, resolver
    )


@pytest.fixture
def client(pipeline):
    return TestClient(build_routes(AppState(pipeline, AppConfig())))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["version"] == SERVICE_VERSION
    assert isinstance(body["timestamp"]["secs_since_epoch"], int)


def test_fast_validate_disposable(client):
    body = client.get("/v1/fast-validate", params={"domain": "TempMail.example"}).json()
    assert body["domain"] == "tempmail.example"
    assert body["is_disposable"] is True
    assert body["is_valid"] is True


def test_fast_validate_extracts_domain_from_address(client):
    response = client.get("/v1/fast-validate", params={"domain": "user @ example.com".replace(" ", "")})
    body = response.json()
    assert response.status_code == 200
    assert body["domain"] == "example.com"
    assert body["is_valid"] is True
    assert body["is_disposable"] is False
    uuid.UUID(body["request_id"])


def test_fast_validate_unknown_domain_is_invalid(client):
    body = client.get("/v1/fast-validate", params={"domain": "unknown.example"}).json()
    assert body["is_valid"] is False


def test_empty_domain_rejected(client):
    response = client.get("/v1/validate", params={"domain": "   "})
    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "INVALID_DOMAIN"
    assert body["error"] == "Domain cannot be empty"


def test_too_long_domain_rejected(client):
    response = client.get("/v1/fast-validate", params={"domain": "a" * 254 + ".com"})
    assert response.status_code == 400
    assert response.json()["error"] == "Domain name too long (max 253 characters)"


def test_missing_domain_parameter(client):
    response = client.get("/v1/validate")
    assert response.status_code == 400


def test_validate_invalid_format(client):
    body = client.get("/v1/validate", params={"domain": "nodot"}).json()
    assert body["is_valid"] is False
    assert body["risk_score"] == 100
    assert body["risk_level"] == "critical"


def test_validate_disposable(client):
    body = client.get("/v1/validate", params={"domain": "throwaway.example"}).json()
    assert body["is_disposable"] is True
    assert body["risk_score"] == 85


def test_validate_typo_without_records(client):
    body = client.get("/v1/validate", params={"domain": "gmial.com"}).json()
    assert body["is_potential_typo"] is True
    assert body["suggestion"] == "gmail.com"
    assert body["is_valid"] is False
    assert body["risk_score"] == 90


def test_validate_existing_domain_is_consistent(client):
    body = client.get("/v1/validate", params={"domain": "example.com"}).json()
    assert body["is_valid"] is True
    assert body["has_a_records"] is True
    assert body["has_mx_records"] is True
    assert body["risk_level"] == RiskLevel.from_score(body["risk_score"]).value
    assert body["spf_record"]["exists"] is False


def test_validate_rejects_post(client):
    response = client.post("/v1/validate", params={"domain": "example.com"})
    assert response.status_code == 405


def test_ready(client):
    body = client.get("/ready").json()
    assert body["ready"] is True


def test_metrics_reports_stats(client, pipeline):
    response = client.get("/metrics")
    assert response.status_code == 200
    stats = pipeline.get_stats()
    assert (
        f"email_validator_disposable_domains_total {stats.disposable_domains_count}\n"
        in response.text
    )
    assert f'email_validator_build_info{{version="{SERVICE_VERSION}"}} 1' in response.text


def test_stats(client, pipeline):
    body = client.get("/admin/stats").json()
    assert body["pipeline_stats"] == pipeline.get_stats().to_dict()
    assert body["version"] == SERVICE_VERSION


def test_clear_cache(client, resolver):
    response = client.post("/admin/cache/clear")
    assert response.json()["message"] == "DNS cache cleared successfully"
    assert resolver.cleared is True