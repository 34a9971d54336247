"""
Loads and handles config from config.yml
Provider API keys (GEMINI_API_KEY, OPENAI_API_KEY) are loaded from .env for security
"""
import logging
import os
from typing import List, Dict, Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ProviderConfig(BaseModel):
    """Model variants and credential for a single LLM provider."""
    name: str
    api_key: Optional[str] = None
    # Ordered preference lists
    analysis_models: List[str] = []
    improvement_models: List[str] = []

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


class Config(BaseModel):
    # Core
    DATABASE_PATH: str = "data/content.db"
    CONTENT_LANGUAGE: str = "Turkish"

    # Providers
    primary: ProviderConfig
    secondary: ProviderConfig

    ANALYSIS_TEMPERATURE: float = 0.3
    ANALYSIS_MAX_TOKENS: int = 2000
    IMPROVEMENT_TEMPERATURE: float = 0.7
    IMPROVEMENT_MAX_TOKENS: int = 4000
    PROVIDER_TIMEOUT: float = 60.0
    PROVIDER_MAX_RETRIES: int = 1

    # "static" or "heuristic"
    FALLBACK_MODE: str = "static"

    # Batch runner
    BATCH_SIZE: int = 5
    BATCH_DELAY: float = 1.0

    # Audit workflow
    LOW_QUALITY_THRESHOLD: float = 50.0
    SCORE_CHANGE_THRESHOLD: float = 5.0


DEFAULT_GEMINI_ANALYSIS_MODELS = ["gemini-2.5-flash-lite", "gemini-2.5-flash", "gemini-2.5-pro"]
DEFAULT_GEMINI_IMPROVEMENT_MODELS = ["gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.5-flash-lite"]
DEFAULT_OPENAI_ANALYSIS_MODELS = ["gpt-4o-mini"]
DEFAULT_OPENAI_IMPROVEMENT_MODELS = ["gpt-4o", "gpt-4o-mini"]


def _get_config_path() -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    env_path = os.getenv("CONTENT_QUALITY_CONFIG")
    if env_path:
        if not os.path.exists(env_path):
            raise FileNotFoundError(f"Cannot find {env_path}")
        return env_path

    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    return None


def _parse_provider_config(
    name: str,
    data: Dict[str, Any],
    api_key: Optional[str],
    default_analysis: List[str],
    default_improvement: List[str],
) -> ProviderConfig:
    return ProviderConfig(
        name=name,
        api_key=api_key or None,
        analysis_models=list(data.get("analysis_models") or default_analysis),
        improvement_models=list(data.get("improvement_models") or default_improvement),
    )


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from config.yml and provider credentials from .env."""
    load_dotenv()

    config_path = path or _get_config_path()
    config: Dict[str, Any] = {}
    if config_path:
        with open(config_path, 'r', encoding='utf-8') as file:
            config = yaml.safe_load(file) or {}
    else:
        logger.warning("No resources/config.yml found, using defaults")

    providers = config.get("providers", {})

    return Config(
        DATABASE_PATH=config.get("DATABASE_PATH", "data/content.db"),
        CONTENT_LANGUAGE=config.get("CONTENT_LANGUAGE", "Turkish"),

        primary=_parse_provider_config(
            "gemini",
            providers.get("gemini", {}),
            os.getenv("GEMINI_API_KEY"),
            DEFAULT_GEMINI_ANALYSIS_MODELS,
            DEFAULT_GEMINI_IMPROVEMENT_MODELS,
        ),
        secondary=_parse_provider_config(
            "openai",
            providers.get("openai", {}),
            os.getenv("OPENAI_API_KEY"),
            DEFAULT_OPENAI_ANALYSIS_MODELS,
            DEFAULT_OPENAI_IMPROVEMENT_MODELS,
        ),

        ANALYSIS_TEMPERATURE=float(config.get("ANALYSIS_TEMPERATURE", 0.3)),
        ANALYSIS_MAX_TOKENS=int(config.get("ANALYSIS_MAX_TOKENS", 2000)),
        IMPROVEMENT_TEMPERATURE=float(config.get("IMPROVEMENT_TEMPERATURE", 0.7)),
        IMPROVEMENT_MAX_TOKENS=int(config.get("IMPROVEMENT_MAX_TOKENS", 4000)),
        PROVIDER_TIMEOUT=float(config.get("PROVIDER_TIMEOUT", 60.0)),
        PROVIDER_MAX_RETRIES=int(config.get("PROVIDER_MAX_RETRIES", 1)),

        FALLBACK_MODE=str(config.get("FALLBACK_MODE", "static")).lower(),

        BATCH_SIZE=int(config.get("BATCH_SIZE", 5)),
        BATCH_DELAY=float(config.get("BATCH_DELAY", 1.0)),

        LOW_QUALITY_THRESHOLD=float(config.get("LOW_QUALITY_THRESHOLD", 50.0)),
        SCORE_CHANGE_THRESHOLD=float(config.get("SCORE_CHANGE_THRESHOLD", 5.0)),
    )


def log_configuration_warnings(config: Config) -> None:
    """Report missing provider credentials once, at process start."""
    if not config.primary.configured:
        logger.warning("GEMINI_API_KEY is not set, primary provider disabled")
    if not config.secondary.configured:
        logger.warning("OPENAI_API_KEY is not set, secondary provider fallback disabled")
    if not config.primary.configured and not config.secondary.configured:
        logger.warning("No AI provider configured, analysis will return the static fallback")
