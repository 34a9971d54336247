"""
Escalation strategies used by the orchestrator.

Each strategy makes one attempt and either returns a result or raises an
AttemptError. The orchestrator walks an ordered list of them.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from core.schemas import AnalysisContext, ContentImprovement, QualityAnalysis
from processing.heuristics import evaluate_quality, static_fallback_analysis
from services.llm import ProviderClient

T = TypeVar("T")


@dataclass(frozen=True)
class AnalyzeRequest:
    content: str
    title: str
    context: Optional[AnalysisContext] = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ImproveRequest:
    content: str
    title: str
    analysis: QualityAnalysis


class Strategy(ABC, Generic[T]):
    """
    One step of a fallback chain.
    """

    provider: str = ""
    label: str = ""

    @abstractmethod
    async def attempt(self, request) -> T:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label}>"


class ProviderAnalyzeStrategy(Strategy[QualityAnalysis]):
    def __init__(self, client: ProviderClient, model: str):
        self.client = client
        self.model = model
        self.provider = client.name
        self.label = f"{client.name}/{model}"

    async def attempt(self, request: AnalyzeRequest) -> QualityAnalysis:
        return await self.client.analyze(
            request.content,
            request.title,
            request.context,
            model=self.model,
        )


class ProviderImproveStrategy(Strategy[ContentImprovement]):
    def __init__(self, client: ProviderClient, model: str):
        self.client = client
        self.model = model
        self.provider = client.name
        self.label = f"{client.name}/{model}"

    async def attempt(self, request: ImproveRequest) -> ContentImprovement:
        return await self.client.improve(
            request.content,
            request.title,
            request.analysis,
            model=self.model,
        )


class StaticFallbackStrategy(Strategy[QualityAnalysis]):
    """Terminal step, cannot fail."""

    provider = "static"
    label = "static-fallback"

    def __init__(self, reason: str = ""):
        self.reason = reason

    async def attempt(self, request: AnalyzeRequest) -> QualityAnalysis:
        return static_fallback_analysis(self.reason)


class HeuristicFallbackStrategy(Strategy[QualityAnalysis]):
    """Terminal step scoring the content with the offline heuristics."""

    provider = "heuristic"
    label = "heuristic-fallback"

    async def attempt(self, request: AnalyzeRequest) -> QualityAnalysis:
        metadata = dict(request.metadata)
        if request.context and request.context.keywords and "keywords" not in metadata:
            metadata["keywords"] = request.context.keywords
        return evaluate_quality(request.content, request.title, metadata)
