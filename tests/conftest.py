"""Shared test fixtures"""

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from core.entities import ContentItem
from core.errors import ProviderError
from core.schemas import AnalysisContext, ContentImprovement, QualityAnalysis
from processing.orchestrator import ContentQualityOrchestrator, ProviderTier
from services.config import Config, ProviderConfig
from services.database import Database

Outcome = Union[QualityAnalysis, ContentImprovement, Exception]


class ScriptedClient:
    """
    Stand-in for a provider client. Each model variant is scripted with a
    result or an exception; unscripted variants fail with ProviderError.
    """

    def __init__(
        self,
        name: str,
        analyses: Optional[Dict[str, Outcome]] = None,
        improvements: Optional[Dict[str, Outcome]] = None,
    ):
        self.name = name
        self.analyses = analyses or {}
        self.improvements = improvements or {}
        self.calls: List[tuple] = []

    async def analyze(self, content, title, context=None, *, model):
        self.calls.append(("analyze", model))
        return self._play(self.analyses, model)

    async def improve(self, content, title, analysis, *, model):
        self.calls.append(("improve", model))
        return self._play(self.improvements, model)

    def _play(self, script, model):
        outcome = script.get(model)
        if outcome is None:
            raise ProviderError("HTTP 503 Service Unavailable", provider=self.name, model=model)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeOrchestrator:
    """Scores items by title; titles listed in `failing` raise."""

    def __init__(self, scores: Dict[str, float], failing=(), default: float = 75):
        self.scores = scores
        self.failing = set(failing)
        self.default = default
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def analyze(self, content, title, context: Optional[AnalysisContext] = None, metadata=None):
        self.calls.append(title)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if title in self.failing:
                raise RuntimeError(f"analysis exploded for {title}")
            return QualityAnalysis(score=self.scores.get(title, self.default))
        finally:
            self.in_flight -= 1


def make_item(
    id: str = "a1",
    title: str = "Kiralık daire rehberi",
    body: str = "<p>Bodrum'da kiralık daire ararken dikkat edilmesi gerekenler.</p>",
    **kwargs,
) -> ContentItem:
    return ContentItem(id=id, title=title, body=body, **kwargs)


def make_tier(client: ScriptedClient, analysis_models=("lite", "flash"), improvement_models=("pro", "flash")):
    return ProviderTier(client, list(analysis_models), list(improvement_models))


@pytest.fixture
def analysis() -> QualityAnalysis:
    return QualityAnalysis(
        score=62,
        issues=[{
            "type": "seo",
            "severity": "medium",
            "message": "Meta description is missing",
            "suggestion": "Add a meta description",
        }],
        suggestions=["Add H2 headings"],
        human_like_score=70,
        seo_score=40,
    )


@pytest.fixture
def improvement() -> ContentImprovement:
    return ContentImprovement.model_validate({
        "improved": "<p>Bodrum'da kiralık daire ararken nelere bakmalı?</p>",
        "score": {"before": 62, "after": 81},
        "changes": [{"type": "replaced", "improved": "nelere bakmalı", "reason": "Daha doğal"}],
    })


@pytest.fixture
def app_config(tmp_path) -> Config:
    return Config(
        DATABASE_PATH=str(tmp_path / "content.db"),
        primary=ProviderConfig(name="gemini"),
        secondary=ProviderConfig(name="openai"),
        BATCH_DELAY=0,
    )


@pytest.fixture
def db(tmp_path) -> Database:
    database = Database(str(tmp_path / "content.db"))
    asyncio.run(database.init_tables())
    return database


@pytest.fixture
def offline_orchestrator() -> ContentQualityOrchestrator:
    """No provider configured: analysis always degrades to the static result."""
    return ContentQualityOrchestrator()
