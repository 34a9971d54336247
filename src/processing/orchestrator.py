"""
AI orchestration for content analysis and improvement.

Analysis walks the primary provider's model variants, then the secondary
provider's (when configured), then a terminal fallback. It never raises.
Improvement walks the same provider chain and raises ImprovementFailedError
when every attempt failed.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from core.errors import AttemptError, ConfigurationError, ImprovementFailedError
from core.prompts import TaskProfile, ANALYZE, IMPROVE
from core.schemas import AnalysisContext, ContentImprovement, QualityAnalysis
from processing.heuristics import static_fallback_analysis
from processing.strategies import (
    AnalyzeRequest,
    HeuristicFallbackStrategy,
    ImproveRequest,
    ProviderAnalyzeStrategy,
    ProviderImproveStrategy,
    StaticFallbackStrategy,
    Strategy,
)
from services.config import Config, ProviderConfig
from services.llm import GeminiClient, OpenAIClient, ProviderClient

logger = logging.getLogger(__name__)

Failure = Tuple[str, str, str]  # (provider, model label, reason)


class ProviderTier:
    """A configured provider client with its ordered model variants."""

    def __init__(
        self,
        client: ProviderClient,
        analysis_models: Sequence[str],
        improvement_models: Sequence[str],
    ):
        self.client = client
        self.analysis_models = list(analysis_models)
        self.improvement_models = list(improvement_models)

    @property
    def name(self) -> str:
        return self.client.name


class ContentQualityOrchestrator:
    def __init__(
        self,
        primary: Optional[ProviderTier] = None,
        secondary: Optional[ProviderTier] = None,
        fallback_mode: str = "static",
    ):
        if fallback_mode not in ("static", "heuristic"):
            raise ConfigurationError(f"Unknown fallback mode: {fallback_mode}")
        self.primary = primary
        self.secondary = secondary
        self.fallback_mode = fallback_mode

    @property
    def tiers(self) -> List[ProviderTier]:
        return [tier for tier in (self.primary, self.secondary) if tier is not None]

    def analysis_chain(self) -> List[Strategy]:
        chain: List[Strategy] = []
        for tier in self.tiers:
            chain.extend(ProviderAnalyzeStrategy(tier.client, m) for m in tier.analysis_models)
        return chain

    def improvement_chain(self) -> List[Strategy]:
        chain: List[Strategy] = []
        for tier in self.tiers:
            chain.extend(ProviderImproveStrategy(tier.client, m) for m in tier.improvement_models)
        return chain

    async def _run_chain(self, chain: List[Strategy], request) -> Tuple[Optional[object], List[Failure]]:
        """
        Try each strategy in order, logging one warning per escalation.
        Returns the first result and the failures collected before it.
        """
        failures: List[Failure] = []
        for index, strategy in enumerate(chain):
            try:
                result = await strategy.attempt(request)
            except Exception as e:
                if not isinstance(e, AttemptError):
                    logger.exception(f"Unexpected error from {strategy.label}")
                failures.append((strategy.provider, strategy.label, str(e)))
                if index + 1 < len(chain):
                    nxt = chain[index + 1]
                    logger.warning(
                        f"Escalating from {strategy.label} to {nxt.label}: {type(e).__name__}: {e}"
                    )
                else:
                    logger.warning(f"{strategy.label} failed: {type(e).__name__}: {e}")
                continue
            return result, failures
        return None, failures

    async def analyze(
        self,
        content: str,
        title: str,
        context: Optional[AnalysisContext] = None,
        metadata: Optional[dict] = None,
    ) -> QualityAnalysis:
        request = AnalyzeRequest(content or "", title or "", context, dict(metadata or {}))

        if self.secondary is None:
            logger.debug("Secondary provider not configured, skipping its tier")

        result, failures = await self._run_chain(self.analysis_chain(), request)
        if result is not None:
            return result

        reason = f"{failures[0][1]}: {failures[0][2]}" if failures else "no AI provider configured"
        if failures:
            logger.error(f"All AI providers failed for analysis, using {self.fallback_mode} fallback")
        else:
            logger.info(f"No AI provider configured, using {self.fallback_mode} fallback")

        terminal: Strategy
        if self.fallback_mode == "heuristic":
            terminal = HeuristicFallbackStrategy()
        else:
            terminal = StaticFallbackStrategy(reason)
        try:
            return await terminal.attempt(request)
        except Exception as e:
            logger.exception(f"{terminal.label} failed, using static fallback")
            return static_fallback_analysis(f"{reason}; {terminal.label}: {e}")

    async def improve(
        self,
        content: str,
        title: str,
        analysis: QualityAnalysis,
    ) -> ContentImprovement:
        request = ImproveRequest(content or "", title or "", analysis)
        result, failures = await self._run_chain(self.improvement_chain(), request)
        if result is not None:
            return result

        logger.error(f"Content improvement failed after {len(failures)} attempt(s)")
        raise ImprovementFailedError(_last_failure_per_provider(failures))

    async def analyze_and_improve(
        self,
        content: str,
        title: str,
        context: Optional[AnalysisContext] = None,
    ) -> Tuple[QualityAnalysis, ContentImprovement]:
        analysis = await self.analyze(content, title, context)
        improvement = await self.improve(content, title, analysis)
        return analysis, improvement


def _last_failure_per_provider(failures: List[Failure]) -> List[Tuple[str, str]]:
    reasons = {}
    for provider, label, reason in failures:
        reasons[provider] = f"{label}: {reason}"
    return list(reasons.items())


def _profiles(config: Config) -> Tuple[TaskProfile, TaskProfile]:
    analysis = TaskProfile(
        name=ANALYZE.name,
        system_prompt=ANALYZE.system_prompt,
        temperature=config.ANALYSIS_TEMPERATURE,
        max_tokens=config.ANALYSIS_MAX_TOKENS,
    )
    improvement = TaskProfile(
        name=IMPROVE.name,
        system_prompt=IMPROVE.system_prompt,
        temperature=config.IMPROVEMENT_TEMPERATURE,
        max_tokens=config.IMPROVEMENT_MAX_TOKENS,
    )
    return analysis, improvement


def _tier(client_cls, provider: ProviderConfig, config: Config) -> Optional[ProviderTier]:
    if not provider.configured:
        return None
    analysis, improvement = _profiles(config)
    client = client_cls(
        api_key=provider.api_key,
        language=config.CONTENT_LANGUAGE,
        analysis_profile=analysis,
        improvement_profile=improvement,
        timeout=config.PROVIDER_TIMEOUT,
        max_retries=config.PROVIDER_MAX_RETRIES,
    )
    return ProviderTier(client, provider.analysis_models, provider.improvement_models)


def build_orchestrator(config: Config) -> ContentQualityOrchestrator:
    """
    Construct provider clients once from configuration. Providers without a
    credential are left out of the chain.
    """
    return ContentQualityOrchestrator(
        primary=_tier(GeminiClient, config.primary, config),
        secondary=_tier(OpenAIClient, config.secondary, config),
        fallback_mode=config.FALLBACK_MODE,
    )
