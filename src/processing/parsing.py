"""
Parsing of provider responses into typed results.
"""
import json
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from core.errors import ResponseParseError
from core.schemas import ContentImprovement, ImprovementChange, QualityAnalysis, ScoreDelta
from core.scoring import estimate_improved_score


_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def _extract_json(content: str) -> Optional[str]:
    """
    Extract a JSON object from an LLM response wrapped in a markdown
    code block or surrounded by prose.
    """
    match = _FENCE_RE.search(content)
    if match:
        return match.group(1).strip()

    object_match = _OBJECT_RE.search(content)
    if object_match:
        return object_match.group(0)

    return None


def parse_json_response(raw: Any) -> Dict[str, Any]:
    """
    Direct parse first, then fenced or embedded object. Raises
    ResponseParseError when no JSON object can be recovered.
    """
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        raise ResponseParseError(f"Unexpected response type: {type(raw).__name__}")

    text = raw.strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        candidate = _extract_json(text)
        if candidate is None:
            raise ResponseParseError("Could not find JSON in response")
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise ResponseParseError(f"Invalid JSON response: {e}") from e

    if not isinstance(parsed, dict):
        raise ResponseParseError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def parse_quality_analysis(raw: Any) -> QualityAnalysis:
    payload = parse_json_response(raw)
    try:
        return QualityAnalysis.model_validate(payload)
    except ValidationError as e:
        raise ResponseParseError(f"Malformed analysis: {e}") from e


def parse_content_improvement(raw: Any, analysis: QualityAnalysis) -> ContentImprovement:
    """
    Builds a ContentImprovement from a provider response. Missing changes
    are derived from the analysis issues and a missing score is estimated.
    """
    payload = parse_json_response(raw)

    improved = payload.get("improved") or payload.get("content")
    if not isinstance(improved, str) or not improved.strip():
        raise ResponseParseError("Response did not contain improved content")

    after = payload.get("score")
    if isinstance(after, dict):
        after = after.get("after")
    if after is None:
        after = estimate_improved_score(analysis.score)

    raw_changes = payload.get("changes")
    if isinstance(raw_changes, list) and raw_changes:
        changes = [
            ImprovementChange.model_validate(change)
            for change in raw_changes
            if isinstance(change, dict)
        ]
    else:
        changes = [
            ImprovementChange(type="replaced", improved=issue.suggestion, reason=issue.message)
            for issue in analysis.issues
        ]

    return ContentImprovement(
        improved=improved.strip(),
        score=ScoreDelta(before=analysis.score, after=after),
        changes=changes,
    )
