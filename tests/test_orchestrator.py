"""Fallback chain tests"""

import asyncio
import logging

import pytest

from conftest import ScriptedClient, make_tier
from core.errors import ConfigurationError, ImprovementFailedError, ProviderTimeoutError, ResponseParseError
from core.schemas import QualityAnalysis
from processing.orchestrator import ContentQualityOrchestrator, build_orchestrator
from services.config import Config, ProviderConfig

LOGGER = "processing.orchestrator"


def _escalations(caplog):
    return [
        r for r in caplog.records
        if r.name == LOGGER and r.levelno == logging.WARNING and r.getMessage().startswith("Escalating from")
    ]


class TestAnalyze:

    def test_first_variant_wins(self):
        gemini = ScriptedClient("gemini", analyses={"lite": QualityAnalysis(score=88)})
        orchestrator = ContentQualityOrchestrator(primary=make_tier(gemini))

        result = asyncio.run(orchestrator.analyze("İçerik", "Başlık"))

        assert result.score == 88
        assert gemini.calls == [("analyze", "lite")]

    def test_second_variant_after_one_escalation(self, caplog):
        caplog.set_level(logging.WARNING, logger=LOGGER)
        gemini = ScriptedClient("gemini", analyses={"flash": QualityAnalysis(score=73)})
        openai = ScriptedClient("openai", analyses={"lite": QualityAnalysis(score=10)})
        orchestrator = ContentQualityOrchestrator(primary=make_tier(gemini), secondary=make_tier(openai))

        result = asyncio.run(orchestrator.analyze("İçerik", "Başlık"))

        assert result.score == 73
        assert openai.calls == []
        escalations = _escalations(caplog)
        assert len(escalations) == 1
        assert "gemini/lite" in escalations[0].getMessage()
        assert "gemini/flash" in escalations[0].getMessage()

    def test_secondary_provider_after_primary_exhausted(self, caplog):
        caplog.set_level(logging.WARNING, logger=LOGGER)
        gemini = ScriptedClient("gemini", analyses={
            "lite": ProviderTimeoutError("timed out", "gemini", "lite"),
            "flash": ResponseParseError("no json", "gemini", "flash"),
        })
        openai = ScriptedClient("openai", analyses={"lite": QualityAnalysis(score=64)})
        orchestrator = ContentQualityOrchestrator(primary=make_tier(gemini), secondary=make_tier(openai))

        result = asyncio.run(orchestrator.analyze("İçerik", "Başlık"))

        assert result.score == 64
        assert len(_escalations(caplog)) == 2

    def test_no_providers_returns_static_fallback(self, offline_orchestrator):
        result = asyncio.run(offline_orchestrator.analyze("İçerik", "Başlık"))

        assert result.score == 50
        assert result.passed is False
        assert len(result.issues) == 1
        assert result.issues[0].type == "error"

    def test_total_failure_returns_static_fallback(self):
        gemini = ScriptedClient("gemini")
        openai = ScriptedClient("openai")
        orchestrator = ContentQualityOrchestrator(primary=make_tier(gemini), secondary=make_tier(openai))

        result = asyncio.run(orchestrator.analyze("İçerik", "Başlık"))

        assert result.score == 50
        assert [issue.type for issue in result.issues] == ["error"]
        assert len(gemini.calls) == 2
        assert len(openai.calls) == 2

    def test_unexpected_exception_does_not_escape(self):
        gemini = ScriptedClient("gemini", analyses={"lite": RuntimeError("boom")})
        orchestrator = ContentQualityOrchestrator(primary=make_tier(gemini, analysis_models=["lite"]))

        result = asyncio.run(orchestrator.analyze("İçerik", "Başlık"))

        assert result.score == 50

    def test_heuristic_fallback_mode(self):
        orchestrator = ContentQualityOrchestrator(fallback_mode="heuristic")

        result = asyncio.run(orchestrator.analyze("", ""))

        assert result.score < 50
        assert any(issue.message == "Content is empty" for issue in result.issues)

    def test_heuristic_mode_tolerates_odd_metadata(self):
        orchestrator = ContentQualityOrchestrator(fallback_mode="heuristic")

        numeric = asyncio.run(orchestrator.analyze("<p>Merhaba</p>", "Başlık", metadata={"keywords": [2024]}))
        text = asyncio.run(orchestrator.analyze(
            "<p>Bodrum villa</p>", "Bodrum villa", metadata={"keywords": "villa, bodrum", "description": 42},
        ))

        assert 0 <= numeric.score <= 100
        assert numeric.issues
        assert 0 <= text.score <= 100

    def test_failing_heuristic_degrades_to_static(self, monkeypatch):
        def explode(*args, **kwargs):
            raise ValueError("evaluator crashed")

        monkeypatch.setattr("processing.strategies.evaluate_quality", explode)
        orchestrator = ContentQualityOrchestrator(fallback_mode="heuristic")

        result = asyncio.run(orchestrator.analyze("<p>Merhaba</p>", "Başlık"))

        assert result.score == 50
        assert [issue.type for issue in result.issues] == ["error"]
        assert "evaluator crashed" in result.issues[0].message

    def test_static_message_quotes_primary_failure(self):
        gemini = ScriptedClient("gemini", analyses={"lite": ProviderTimeoutError("gemini timed out", "gemini", "lite")})
        openai = ScriptedClient("openai", analyses={"lite": ResponseParseError("openai sent prose", "openai", "lite")})
        orchestrator = ContentQualityOrchestrator(
            primary=make_tier(gemini, analysis_models=["lite"]),
            secondary=make_tier(openai, analysis_models=["lite"]),
        )

        result = asyncio.run(orchestrator.analyze("İçerik", "Başlık"))

        assert "gemini/lite: gemini timed out" in result.issues[0].message

    def test_unknown_fallback_mode(self):
        with pytest.raises(ConfigurationError):
            ContentQualityOrchestrator(fallback_mode="retry-forever")


class TestImprove:

    def test_first_improvement_variant(self, analysis, improvement):
        gemini = ScriptedClient("gemini", improvements={"pro": improvement})
        orchestrator = ContentQualityOrchestrator(primary=make_tier(gemini))

        result = asyncio.run(orchestrator.improve("İçerik", "Başlık", analysis))

        assert result is improvement
        assert gemini.calls == [("improve", "pro")]

    def test_secondary_provider_improves(self, analysis, improvement):
        gemini = ScriptedClient("gemini")
        openai = ScriptedClient("openai", improvements={"flash": improvement})
        orchestrator = ContentQualityOrchestrator(primary=make_tier(gemini), secondary=make_tier(openai))

        result = asyncio.run(orchestrator.improve("İçerik", "Başlık", analysis))

        assert result is improvement
        assert [c[1] for c in openai.calls] == ["pro", "flash"]

    def test_failure_names_both_providers(self, analysis):
        gemini = ScriptedClient("gemini")
        openai = ScriptedClient("openai")
        orchestrator = ContentQualityOrchestrator(primary=make_tier(gemini), secondary=make_tier(openai))

        with pytest.raises(ImprovementFailedError) as exc_info:
            asyncio.run(orchestrator.improve("İçerik", "Başlık", analysis))

        message = str(exc_info.value)
        assert "gemini" in message
        assert "openai" in message
        assert [provider for provider, _ in exc_info.value.failures] == ["gemini", "openai"]

    def test_no_providers(self, offline_orchestrator, analysis):
        with pytest.raises(ImprovementFailedError, match="no AI provider is configured"):
            asyncio.run(offline_orchestrator.improve("İçerik", "Başlık", analysis))

    def test_analyze_and_improve(self, improvement):
        gemini = ScriptedClient(
            "gemini",
            analyses={"lite": QualityAnalysis(score=58)},
            improvements={"pro": improvement},
        )
        orchestrator = ContentQualityOrchestrator(primary=make_tier(gemini))

        analysis, result = asyncio.run(orchestrator.analyze_and_improve("İçerik", "Başlık"))

        assert analysis.score == 58
        assert result is improvement


class TestBuildOrchestrator:

    def test_providers_without_keys_are_skipped(self):
        config = Config(
            primary=ProviderConfig(name="gemini", api_key="g-key", analysis_models=["gemini-2.5-flash-lite"]),
            secondary=ProviderConfig(name="openai"),
        )
        orchestrator = build_orchestrator(config)

        assert [tier.name for tier in orchestrator.tiers] == ["gemini"]
        assert orchestrator.primary.analysis_models == ["gemini-2.5-flash-lite"]
        assert orchestrator.secondary is None

    def test_no_keys(self):
        config = Config(primary=ProviderConfig(name="gemini"), secondary=ProviderConfig(name="openai"))
        orchestrator = build_orchestrator(config)

        assert orchestrator.tiers == []
        assert orchestrator.fallback_mode == "static"
