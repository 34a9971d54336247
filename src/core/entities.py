from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any

from core.schemas import QualityAnalysis


@dataclass(frozen=True)
class ContentItem:
    """
    Canonical representation of an editorial content row (article or news).
    """
    id: str
    title: str
    body: str
    kind: str = "article"
    slug: str = ""
    excerpt: str = ""
    meta_description: str = ""
    keywords: List[str] = field(default_factory=list)
    category: Optional[str] = None
    quality_score: Optional[float] = None
    deleted: bool = False

    @property
    def metadata(self) -> Dict[str, Any]:
        return {
            "description": self.meta_description,
            "keywords": list(self.keywords),
        }


@dataclass(frozen=True)
class BatchResult:
    """
    Analysis produced for one item of a batch.
    """
    id: str
    analysis: QualityAnalysis


@dataclass(frozen=True)
class ImprovementRecord:
    """
    Tracking row for one improve request.
    """
    id: int
    content_id: str
    status: str
    original_content: str
    improved_content: Optional[str]
    error_message: Optional[str]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


@dataclass
class AuditReport:
    """
    Outcome of a quality audit run.
    """
    total: int = 0
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    low_quality: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "processed": self.processed,
            "updated": self.updated,
            "skipped": self.skipped,
            "lowQuality": self.low_quality,
            "errors": self.errors,
        }
