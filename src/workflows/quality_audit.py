# src/workflows/quality_audit.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import aiosqlite

from core.entities import AuditReport
from core.errors import ContentNotFoundError
from processing.batch import batch_analyze
from processing.orchestrator import ContentQualityOrchestrator
from services.config import Config
from services.database import Database
from workflows.base import ContentWorkflow

logger = logging.getLogger(__name__)


class QualityAuditWorkflow(ContentWorkflow):
    """
    Scores stored content in batches and writes the snapshots back.
    Rows are only rewritten when there was no score yet or the score moved
    by more than `score_change_threshold` points.
    """

    name = "quality_audit"

    def __init__(
        self,
        orchestrator: ContentQualityOrchestrator,
        db: Database,
        batch_size: int = 5,
        batch_delay: float = 1.0,
        low_quality_threshold: float = 50.0,
        score_change_threshold: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.orchestrator = orchestrator
        self.db = db
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.low_quality_threshold = low_quality_threshold
        self.score_change_threshold = score_change_threshold
        self.sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: Config,
        orchestrator: ContentQualityOrchestrator,
        db: Database,
    ) -> "QualityAuditWorkflow":
        return cls(
            orchestrator=orchestrator,
            db=db,
            batch_size=config.BATCH_SIZE,
            batch_delay=config.BATCH_DELAY,
            low_quality_threshold=config.LOW_QUALITY_THRESHOLD,
            score_change_threshold=config.SCORE_CHANGE_THRESHOLD,
        )

    async def run(
        self,
        kind: Optional[str] = None,
        limit: Optional[int] = None,
        only_unscored: bool = False,
        force: bool = False,
    ) -> AuditReport:
        report = AuditReport()

        items = await self.db.list_content(kind=kind, limit=limit, only_unscored=only_unscored)
        report.total = len(items)
        logger.info(f"Found {report.total} content items to audit")

        if not items:
            return report

        results = await batch_analyze(
            self.orchestrator,
            items,
            batch_size=self.batch_size,
            delay=self.batch_delay,
            sleep=self.sleep,
        )

        by_id = {item.id: item for item in items}
        analyzed = set()

        for result in results:
            item = by_id[result.id]
            analyzed.add(result.id)
            report.processed += 1
            score = result.analysis.score

            current = item.quality_score
            changed = current is None or abs(score - current) > self.score_change_threshold

            if changed or force:
                try:
                    await self.db.update_quality_score(item.id, result.analysis)
                except (ContentNotFoundError, aiosqlite.Error) as e:
                    report.errors.append(f"{item.slug or item.id}: {e}")
                    logger.error(f"Score update failed for {item.id}: {e}")
                else:
                    report.updated += 1
                    logger.info(
                        f"Updated {item.id} (score: {score:.0f}, issues: {len(result.analysis.issues)})"
                    )
            else:
                report.skipped += 1
                logger.debug(f"Skipped {item.id} (no significant change)")

            if score < self.low_quality_threshold:
                report.low_quality.append({
                    "id": item.id,
                    "title": item.title,
                    "slug": item.slug,
                    "score": score,
                    "issues": len(result.analysis.issues),
                })

        for item in items:
            if item.id not in analyzed:
                report.errors.append(f"{item.slug or item.id}: analysis failed")

        logger.info(
            f"Audit complete: {report.processed} processed, {report.updated} updated, "
            f"{len(report.low_quality)} low quality, {len(report.errors)} errors"
        )
        return report
