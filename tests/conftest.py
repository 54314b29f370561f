import copy
import json
from types import SimpleNamespace

import httpx
import pytest

SAMPLE_ANALYSIS = {
    "scanAnalysis": {"scanType": "X-ray", "bodyRegion": "Left distal radius", "imageQuality": "Good"},
    "findings": [
        {
            "type": "Transverse fracture",
            "location": "Distal radius, 2 cm proximal to the wrist joint",
            "description": "Non-displaced transverse fracture line across the metaphysis",
            "severity": "Moderate",
            "confidence": 0.87,
        },
        {
            "type": "Soft tissue swelling",
            "location": "Dorsal wrist",
            "description": "Mild swelling adjacent to the fracture site",
            "severity": "Mild",
            "confidence": 0.64,
        },
    ],
    "overallSeverity": "Moderate",
    "severityScore": 45,
    "recommendations": {
        "immediateAction": "Immobilize the wrist with a splint and avoid weight bearing",
        "specialistReferral": {
            "type": "Orthopedic Surgeon",
            "urgency": "Urgent",
            "reason": "Fracture management and casting",
        },
        "suggestedMedications": [
            {"name": "Ibuprofen", "purpose": "Pain relief", "note": "Must be prescribed by physician"},
            {"name": "Paracetamol", "purpose": "Analgesic", "note": "Check liver function"},
            {"name": "Ice packs", "purpose": "Swelling", "note": "20 minutes at a time"},
        ],
        "additionalTests": ["Follow-up X-ray in 2 weeks", "CT if pain persists"],
    },
    "summary": "A non-displaced distal radius fracture with mild soft tissue swelling.",
    "disclaimer": "This AI analysis is for screening purposes only.",
}

UPSTREAM_URL = "https://gateway.test/v1/chat/completions"


@pytest.fixture
def sample_analysis():
    return copy.deepcopy(SAMPLE_ANALYSIS)


@pytest.fixture
def fenced_reply(sample_analysis):
    return "Here is the analysis:\n```json\n" + json.dumps(sample_analysis, indent=2) + "\n```\n"


def completion(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def status_error(cls, status, text=""):
    request = httpx.Request("POST", UPSTREAM_URL)
    response = httpx.Response(status, request=request, text=text)
    return cls(f"Error code: {status}", response=response, body=None)


def timeout_error(cls):
    return cls(request=httpx.Request("POST", UPSTREAM_URL))


class FakeUpstream:
    """Stands in for the OpenAI client: replays queued replies or errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return completion(outcome)


@pytest.fixture
def upstream(monkeypatch):
    """Install a FakeUpstream behind main.create_client."""
    import main

    monkeypatch.setenv("OPENAI_API_KEY", "test-key")

    def install(*outcomes):
        fake = FakeUpstream(*outcomes)

        def create_client(api_key):
            assert api_key == "test-key"
            return fake

        monkeypatch.setattr(main, "create_client", create_client)
        return fake

    return install


@pytest.fixture
def proxy():
    from fastapi.testclient import TestClient

    import main

    return TestClient(main.app)
