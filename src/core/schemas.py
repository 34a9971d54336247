"""
Pydantic schemas for quality analysis and content improvement results.
"""
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from core.scoring import PASS_THRESHOLD, clamp_score

Severity = Literal["low", "medium", "high"]
ChangeType = Literal["replaced", "added", "removed"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)


class QualityIssue(_CamelModel):
    """
    A single problem found in a piece of content.
    """
    type: str = "general"
    severity: Severity = "medium"
    message: str = ""
    suggestion: str = ""

    @field_validator("type", "message", "suggestion", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("severity", mode="before")
    @classmethod
    def _known_severity(cls, value: Any) -> str:
        value = str(value or "").lower()
        return value if value in ("low", "medium", "high") else "medium"


class QualityAnalysis(_CamelModel):
    """
    Scored quality report for a piece of content.
    `passed` is always re-derived from `score`.
    """
    score: float = 0
    passed: bool = False
    issues: List[QualityIssue] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    ai_generated: bool = False
    human_like_score: float = 0
    seo_score: float = 0

    @field_validator("score", "human_like_score", "seo_score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_score(value)

    @field_validator("issues", mode="before")
    @classmethod
    def _coerce_issues(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        issues = []
        for issue in value:
            if isinstance(issue, (dict, QualityIssue)):
                issues.append(issue)
            elif isinstance(issue, str) and issue.strip():
                issues.append({"message": issue})
        return issues

    @field_validator("suggestions", mode="before")
    @classmethod
    def _coerce_suggestions(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(s) for s in value if s is not None and str(s).strip()]

    @field_validator("ai_generated", mode="before")
    @classmethod
    def _strict_true(cls, value: Any) -> bool:
        return value is True

    @model_validator(mode="after")
    def _derive_passed(self) -> "QualityAnalysis":
        # written through __dict__ so assignment validation does not recurse
        self.__dict__["passed"] = self.score >= PASS_THRESHOLD
        return self


class ImprovementChange(_CamelModel):
    type: ChangeType = "replaced"
    improved: str = ""
    reason: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, value: Any) -> str:
        value = str(value or "").lower()
        return value if value in ("replaced", "added", "removed") else "replaced"

    @field_validator("improved", "reason", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ScoreDelta(_CamelModel):
    before: float = 0
    after: float = 0
    improvement: float = 0

    @field_validator("before", "after", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_score(value)

    @model_validator(mode="after")
    def _derive_improvement(self) -> "ScoreDelta":
        self.__dict__["improvement"] = self.after - self.before
        return self


class ContentImprovement(_CamelModel):
    """
    Proposed rewrite of a piece of content. Never saved automatically.
    """
    improved: str
    score: ScoreDelta = Field(default_factory=ScoreDelta)
    changes: List[ImprovementChange] = Field(default_factory=list)
    model: Optional[str] = None


class AnalysisContext(_CamelModel):
    """Optional hints passed to the analysis prompt."""
    category: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
