import pytest
from fastapi.testclient import TestClient

from apps.api.dependencies import get_identification_service, get_vision_labeler
from apps.api.main import app
from packages.domain.waste_matching.schemas import NOT_FOUND_NAME, CandidateLabel
from packages.domain.waste_matching.vision_labeler import VisionUnavailableError


class FakeLabeler:
    def __init__(self, labels=None, error=None):
        self.labels = labels or []
        self.error = error

    async def label_image(self, image, media_type="image/jpeg"):
        if self.error:
            raise self.error
        return self.labels


@pytest.fixture
def client(service):
    app.dependency_overrides[get_identification_service] = lambda: service
    app.dependency_overrides[get_vision_labeler] = lambda: FakeLabeler(
        [CandidateLabel(description="soda can", confidence=0.93, material="aluminium")]
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_identify_labels(client):
    resp = client.post("/api/v1/identify", json={"labels": [
        {"description": "plastic bag", "confidence": 0.92, "material": "soft plastic"},
        {"description": "shopping", "confidence": 0.71},
    ]})

    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Bag"
    assert data["home_category"] == "Plastic"
    assert data["categorization_source"] == "database-precise"
    assert data["decision_log"]


def test_identify_without_labels_returns_sentinel(client):
    resp = client.post("/api/v1/identify", json={"labels": []})

    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == NOT_FOUND_NAME
    assert data["confidence"] == 0.0


def test_identify_rejects_malformed_body(client):
    resp = client.post("/api/v1/identify", json={"labels": [{"confidence": 0.5}]})
    assert resp.status_code == 422


def test_identify_image(client):
    resp = client.post("/api/v1/identify/image", files={"file": ("can.jpg", b"\xff\xd8\xff", "image/jpeg")})

    assert resp.status_code == 200
    assert resp.json()["name"] == "Can"


def test_identify_image_unsupported_type(client):
    resp = client.post("/api/v1/identify/image", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 415


def test_identify_image_vision_unavailable(client, service):
    app.dependency_overrides[get_vision_labeler] = lambda: FakeLabeler(error=VisionUnavailableError("no key"))

    resp = client.post("/api/v1/identify/image", files={"file": ("can.png", b"\x89PNG", "image/png")})

    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == NOT_FOUND_NAME
    assert any("Vision labeling unavailable" in line for line in data["decision_log"])
    assert service.recent.list()[0].name == NOT_FOUND_NAME


def test_catalog_search(client):
    resp = client.get("/api/v1/catalog/search", params={"q": "alumin"})

    assert resp.status_code == 200
    assert [entry["name"] for entry in resp.json()] == ["Aluminium foil", "Can"]


def test_catalog_search_short_term(client):
    resp = client.get("/api/v1/catalog/search", params={"q": "a"})
    assert resp.status_code == 200
    assert resp.json() == []


def test_catalog_select(client, entries):
    can = next(entry for entry in entries if entry.name == "Can")
    resp = client.post("/api/v1/catalog/select", json=can.model_dump())

    assert resp.status_code == 200
    assert resp.json()["confidence"] == 1.0


def test_recent_list_and_clear(client):
    client.post("/api/v1/identify", json={"labels": [{"description": "can", "confidence": 0.8}]})
    client.post("/api/v1/identify", json={"labels": [{"description": "tub", "confidence": 0.8}]})

    resp = client.get("/api/v1/recent")
    assert [r["name"] for r in resp.json()] == ["Tub", "Can"]
    assert len(client.get("/api/v1/recent", params={"limit": 1}).json()) == 1

    assert client.delete("/api/v1/recent").status_code == 204
    assert client.get("/api/v1/recent").json() == []


def test_recent_rejects_non_positive_limit(client):
    assert client.get("/api/v1/recent", params={"limit": -1}).status_code == 422
    assert client.get("/api/v1/recent", params={"limit": 0}).status_code == 422


def test_metrics_exposes_identification_counter(client):
    client.post("/api/v1/identify", json={"labels": [{"description": "can", "confidence": 0.8}]})

    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "waste_identifications_total" in resp.text


def test_health_reports_unavailable_catalog(client):
    resp = client.get("/health")
    assert resp.status_code == 503
    assert resp.json()["status"] == "unhealthy"
