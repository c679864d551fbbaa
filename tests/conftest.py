"""Shared test fixtures."""
import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from classifier import IntentClassifier
from main import create_app
from models import LeadCreate, OfferCreate
from storage import MemoryStore


def mock_chat_response(content):
    """Build a MagicMock shaped like an openai chat completion."""
    text = json.dumps(content) if isinstance(content, dict) else content
    message = MagicMock()
    message.content = text
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def offer(store):
    return store.create_offer(OfferCreate(
        name="CRM Tool",
        value_props=["24/7 outreach", "6x more meetings"],
        ideal_use_cases=["software"],
    ))


@pytest.fixture
def make_lead():
    def _make(**overrides):
        defaults = dict(
            name="Jane Doe",
            role="VP of Sales",
            company="Acme",
            industry="software",
            location="Berlin",
            linkedin_bio="Sales leader scaling SaaS teams",
        )
        defaults.update(overrides)
        return LeadCreate(**defaults)
    return _make


@pytest.fixture
def openai_client():
    """Mock OpenAI client that answers High by default."""
    client = MagicMock()
    client.chat.completions.create.return_value = mock_chat_response(
        {"intent": "High", "reasoning": "Senior buyer in a target industry."}
    )
    return client


@pytest.fixture
def classifier(openai_client):
    return IntentClassifier(openai_client, model="test-model")


@pytest.fixture
def api(store, classifier, monkeypatch):
    """FastAPI test client wired to the test store and classifier."""
    # keep pytest's log capture in place
    monkeypatch.setattr("main.configure_logging", lambda: None)
    with TestClient(create_app(store=store, classifier=classifier)) as c:
        yield c


@pytest.fixture
def chat_response():
    return mock_chat_response
