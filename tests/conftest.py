"""Shared fixtures for Mycelium tests."""

import itertools
import json

import pytest

from mycelium.analyzer import ContextAnalyzer
from mycelium.engine import MyceliumEngine
from mycelium.executor import SuggestionExecutor
from mycelium.models import Suggestion, SuggestionType
from mycelium.providers import ProviderResponse


class FakeProvider:
    """Scripted provider: returns (or raises) queued responses in order, records calls."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.on_call = None

    def queue(self, *responses):
        self.responses.extend(responses)

    async def generate(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.on_call:
            self.on_call()
        if not self.responses:
            raise RuntimeError("FakeProvider has no queued response")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def analysis_payload(types=None, **overrides) -> dict:
    """A schema-conforming analysis payload with five distinct-type suggestions."""
    types = types or ["Clarify", "Expand", "Create", "Challenge", "Crystallize"]
    data = {
        "patternsDetected": ["Question", "Imperative"],
        "historyDepth": "shallow",
        "contextContinuity": "Opens a new thread about sorting algorithms and their trade-offs",
        "dialecticalOpportunity": "Quicksort's worst case is quadratic",
        "suggestions": [
            {
                "type": t,
                "title": f"{t} path",
                "description": f"Do a {t.lower()} step",
                "reasoning": f"{t} fits the input",
                "confidence": 0.8,
            }
            for t in types
        ],
    }
    data.update(overrides)
    return data


def analysis_response(**kwargs) -> ProviderResponse:
    return ProviderResponse(text=json.dumps(analysis_payload(**kwargs)))


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def engine(provider, id_factory):
    """Active engine wired to the scripted provider."""
    return MyceliumEngine(
        analyzer=ContextAnalyzer(provider, id_factory=id_factory),
        executor=SuggestionExecutor(provider),
        id_factory=id_factory,
    )


@pytest.fixture
def make_suggestion():
    def _make(stype=SuggestionType.CLARIFY, **kwargs):
        fields = {
            "id": "sug-1",
            "type": stype,
            "title": "A title",
            "description": "A description",
            "reasoning": "Some reasoning",
            "confidence": 0.9,
        }
        fields.update(kwargs)
        return Suggestion(**fields)
    return _make
