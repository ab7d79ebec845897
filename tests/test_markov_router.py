"""
Tests for the Markov HTTP router and app lifecycle.
"""
import pytest
from fastapi.testclient import TestClient

from markov_engine.app import create_app
from markov_engine.config import Settings

from conftest import GREETING_VOCAB


@pytest.fixture
def client():
    settings = Settings(MARKOV_SEED_NUMBER=42, MARKOV_MEMORY_SIZE=2, FRAME_INTERVAL_MS=1)
    with TestClient(create_app(settings)) as test_client:
        yield test_client


class TestMarkovRouter:
    """Test suite for /markov endpoints."""

    def test_health(self, client):
        """Test health reports a ready system."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["data"]["state"] == "ready"

    def test_train_and_generate(self, client, greeting_text):
        """Test training then generating returns text from the corpus."""
        trained = client.post("/markov/train", json={"model_id": "greeting", "text": greeting_text})
        assert trained.status_code == 200
        assert trained.json()["data"]["status"] == "complete"

        generated = client.post("/markov/generate", json={"model_id": "greeting", "length": 5})
        data = generated.json()["data"]

        assert generated.status_code == 200
        assert isinstance(data["text"], str)
        assert len(data["tokens"]) <= 5
        assert set(data["tokens"]) <= GREETING_VOCAB

    def test_generate_unknown_model(self, client):
        """Test generating from an unknown model is a 404."""
        response = client.post("/markov/generate", json={"model_id": "nope"})

        assert response.status_code == 404

    def test_train_empty_text(self, client):
        """Test empty corpus is a 400."""
        response = client.post("/markov/train", json={"model_id": "m", "text": "   "})

        assert response.status_code == 400

    def test_order_mismatch(self, client, greeting_text):
        """Test retraining with another order is a 409."""
        client.post("/markov/train", json={"model_id": "m", "text": greeting_text, "order": 1})
        response = client.post("/markov/train", json={"model_id": "m", "text": greeting_text, "order": 2})

        assert response.status_code == 409

    def test_list_and_evict(self, client):
        """Test the model list honours memory size."""
        for model_id in ["a", "b", "c"]:
            client.post("/markov/train", json={"model_id": model_id, "text": "alpha beta gamma"})

        response = client.get("/markov/models")

        assert response.json()["data"]["models"] == ["b", "c"]

    def test_model_stats_and_reset(self, client, greeting_text):
        """Test stats and reset endpoints."""
        client.post("/markov/train", json={"model_id": "m", "text": greeting_text})

        stats = client.get("/markov/models/m").json()["data"]
        assert stats["vocab_size"] == 4

        assert client.post("/markov/reset/m").status_code == 200
        assert client.get("/markov/models/m").json()["data"]["trained_tokens"] == 0
        assert client.post("/markov/reset/missing").status_code == 404

    def test_job_status(self, client, greeting_text):
        """Test job lookup by id."""
        job = client.post("/markov/train", json={"model_id": "m", "text": greeting_text}).json()["data"]

        response = client.get(f"/markov/jobs/{job['job_id']}")
        assert response.status_code == 200
        assert response.json()["data"]["model_id"] == "m"
        assert client.get("/markov/jobs/9999").status_code == 404
