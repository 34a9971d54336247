import asyncio
import logging
from typing import Awaitable, Callable, List, Sequence

from core.entities import BatchResult, ContentItem
from core.schemas import AnalysisContext
from processing.orchestrator import ContentQualityOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY = 1.0


def chunked(items: Sequence, size: int) -> List[Sequence]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


async def _analyze_item(orchestrator: ContentQualityOrchestrator, item: ContentItem) -> BatchResult:
    context = AnalysisContext(category=item.category, keywords=list(item.keywords))
    analysis = await orchestrator.analyze(item.body, item.title, context, item.metadata)
    return BatchResult(id=item.id, analysis=analysis)


async def batch_analyze(
    orchestrator: ContentQualityOrchestrator,
    items: Sequence[ContentItem],
    batch_size: int = DEFAULT_BATCH_SIZE,
    delay: float = DEFAULT_BATCH_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[BatchResult]:
    """
    Analyzes items in fixed-size chunks. Calls inside a chunk run
    concurrently and all settle before the next chunk starts; failed items
    are logged and dropped. Waits `delay` seconds between chunks.
    """
    results: List[BatchResult] = []
    chunks = chunked(list(items), batch_size)

    for index, chunk in enumerate(chunks):
        logger.info(f"Analyzing batch {index + 1}/{len(chunks)} ({len(chunk)} items)")
        settled = await asyncio.gather(
            *(_analyze_item(orchestrator, item) for item in chunk),
            return_exceptions=True,
        )

        for item, outcome in zip(chunk, settled):
            if isinstance(outcome, BaseException):
                logger.error(f"Batch analysis failed for {item.id}: {outcome}")
                continue
            results.append(outcome)

        if index + 1 < len(chunks):
            await sleep(delay)

    return results
