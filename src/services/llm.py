import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from core.errors import ConfigurationError, ProviderError, ProviderTimeoutError
from core.prompts import ANALYZE, IMPROVE, TaskProfile, build_analysis_prompt, build_improvement_prompt
from core.schemas import AnalysisContext, ContentImprovement, QualityAnalysis
from processing.parsing import parse_content_improvement, parse_quality_analysis

logger = logging.getLogger(__name__)


class ProviderClient(ABC):
    """
    LangChain-based wrapper around one hosted LLM provider with timeout
    and retry handling. Subclasses only decide how a chat model is built.
    """

    name = "provider"
    api_key_env = ""

    def __init__(
        self,
        api_key: Optional[str],
        language: str = "Turkish",
        analysis_profile: TaskProfile = ANALYZE,
        improvement_profile: TaskProfile = IMPROVE,
        timeout: float = 60.0,
        max_retries: int = 1,
        retry_delay: float = 2.0,
    ):
        if not api_key:
            raise ConfigurationError(f"{self.api_key_env or self.name} is not set")

        self.api_key = api_key
        self.language = language
        self.analysis_profile = analysis_profile
        self.improvement_profile = improvement_profile
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

        self._chats: Dict[Tuple[str, str], Any] = {}

    @abstractmethod
    def _build_chat(self, model: str, profile: TaskProfile) -> Any:
        """Create the langchain chat model for one (model, task) pair."""
        raise NotImplementedError

    def _chat(self, model: str, profile: TaskProfile) -> Any:
        key = (model, profile.name)
        if key not in self._chats:
            self._chats[key] = self._build_chat(model, profile)
        return self._chats[key]

    async def _invoke_with_retry(
        self,
        model: str,
        profile: TaskProfile,
        messages: List[BaseMessage],
    ) -> str:
        """
        Invoke the chat model under a deadline. Connection failures are
        retried, timeouts and other errors fail the attempt immediately.
        """
        try:
            chat = self._chat(model, profile)
        except Exception as e:
            raise ProviderError(
                f"Could not create chat model: {e}",
                provider=self.name,
                model=model,
            ) from e
        last_exception: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = await asyncio.wait_for(
                    chat.ainvoke(messages),
                    timeout=self.timeout,
                )
                return _message_text(response)

            except asyncio.TimeoutError:
                raise ProviderTimeoutError(
                    f"Request timed out after {self.timeout}s",
                    provider=self.name,
                    model=model,
                )

            except Exception as e:
                error_msg = str(e)
                if "connection" not in error_msg.lower() and "connect" not in error_msg.lower():
                    raise ProviderError(
                        f"{type(e).__name__}: {error_msg}",
                        provider=self.name,
                        model=model,
                    ) from e

                last_exception = e
                logger.warning(
                    f"Attempt {attempt}/{self.max_retries}: Connection error - {error_msg} (provider={self.name}, model={model})"
                )

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * attempt)

        raise ProviderError(
            f"All connection attempts failed: {last_exception}",
            provider=self.name,
            model=model,
        )

    async def _complete(self, model: str, profile: TaskProfile, prompt: str) -> str:
        start = time.time()
        messages = [SystemMessage(content=profile.system_prompt), HumanMessage(content=prompt)]
        content = await self._invoke_with_retry(model, profile, messages)
        latency_ms = int((time.time() - start) * 1000)
        logger.debug(f"{self.name}/{model} {profile.name} completed in {latency_ms}ms")
        return content

    async def analyze(
        self,
        content: str,
        title: str,
        context: Optional[AnalysisContext] = None,
        *,
        model: str,
    ) -> QualityAnalysis:
        prompt = build_analysis_prompt(content, title, context, self.language)
        raw = await self._complete(model, self.analysis_profile, prompt)
        try:
            return parse_quality_analysis(raw)
        except Exception as e:
            _tag(e, self.name, model)
            raise

    async def improve(
        self,
        content: str,
        title: str,
        analysis: QualityAnalysis,
        *,
        model: str,
    ) -> ContentImprovement:
        prompt = build_improvement_prompt(content, title, analysis, self.language)
        raw = await self._complete(model, self.improvement_profile, prompt)
        try:
            improvement = parse_content_improvement(raw, analysis)
        except Exception as e:
            _tag(e, self.name, model)
            raise
        improvement.model = f"{self.name}/{model}"
        return improvement


class GeminiClient(ProviderClient):
    """Primary provider: Google Gemini through langchain-google-genai."""

    name = "gemini"
    api_key_env = "GEMINI_API_KEY"

    def _build_chat(self, model: str, profile: TaskProfile) -> Any:
        return ChatGoogleGenerativeAI(
            model=model,
            google_api_key=self.api_key,
            temperature=profile.temperature,
            max_output_tokens=profile.max_tokens,
            response_mime_type="application/json" if profile.json_output else None,
            max_retries=1,
        )


class OpenAIClient(ProviderClient):
    """Secondary provider: OpenAI chat completions through langchain-openai."""

    name = "openai"
    api_key_env = "OPENAI_API_KEY"

    def _build_chat(self, model: str, profile: TaskProfile) -> Any:
        chat = ChatOpenAI(
            model=model,
            api_key=self.api_key,
            temperature=profile.temperature,
            max_tokens=profile.max_tokens,
            max_retries=0,
        )
        if profile.json_output:
            return chat.bind(response_format={"type": "json_object"})
        return chat


def _message_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict):
                parts.append(str(part.get("text", "")))
            else:
                parts.append(str(part))
        return "".join(parts)
    return "" if content is None else str(content)


def _tag(error: Exception, provider: str, model: str) -> None:
    if hasattr(error, "provider") and not getattr(error, "provider"):
        error.provider = provider
        error.model = model
