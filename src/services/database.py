import json
import os
import aiosqlite
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional
import logging

from core.entities import ContentItem, ImprovementRecord
from core.errors import ContentNotFoundError
from core.schemas import ContentImprovement, QualityAnalysis
from core.scoring import PASS_THRESHOLD, clamp_score, passes_threshold

logger = logging.getLogger(__name__)

CONTENT_KINDS = ("article", "news")


class Database:
    def __init__(self, path: str):
        self.path = path

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode=WAL;")
        await conn.execute("PRAGMA foreign_keys=ON;")
        try:
            yield conn
        finally:
            await conn.close()

    async def execute(self, query: str, params: tuple = ()) -> int:
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.rowcount

    async def fetchone(self, query: str, params: tuple = ()):
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()

    async def fetchall(self, query: str, params: tuple = ()):
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()

    async def init_tables(self) -> None:
        """Initialize database tables for content and improvement tracking."""
        db_dir = os.path.dirname(self.path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        async with self.connect() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS content_items (
                    id TEXT PRIMARY KEY,
                    kind TEXT NOT NULL DEFAULT 'article',
                    title TEXT NOT NULL,
                    slug TEXT NOT NULL DEFAULT '',
                    body TEXT NOT NULL DEFAULT '',
                    excerpt TEXT NOT NULL DEFAULT '',
                    meta_description TEXT NOT NULL DEFAULT '',
                    keywords TEXT NOT NULL DEFAULT '[]',
                    category TEXT,
                    quality_score REAL,
                    quality_passed INTEGER,
                    quality_issues TEXT,
                    quality_checked_at TIMESTAMP,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    deleted_at TIMESTAMP
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS content_improvements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    content_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    original_content TEXT NOT NULL DEFAULT '',
                    quality_analysis TEXT,
                    improved_content TEXT,
                    improvement_result TEXT,
                    error_message TEXT,
                    started_at TIMESTAMP,
                    completed_at TIMESTAMP
                )
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_content_items_kind ON content_items(kind)
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_content_items_quality ON content_items(quality_score)
            """)
            await conn.commit()
            logger.info("Database tables initialized")

    async def upsert_content(self, item: ContentItem) -> None:
        """Insert or replace a content row (editor/import side)."""
        now = datetime.utcnow().isoformat()
        await self.execute(
            """
            INSERT INTO content_items
            (id, kind, title, slug, body, excerpt, meta_description, keywords, category,
             quality_score, quality_passed, updated_at, deleted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                kind = excluded.kind,
                title = excluded.title,
                slug = excluded.slug,
                body = excluded.body,
                excerpt = excluded.excerpt,
                meta_description = excluded.meta_description,
                keywords = excluded.keywords,
                category = excluded.category,
                updated_at = excluded.updated_at,
                deleted_at = excluded.deleted_at
            """,
            (
                item.id, item.kind, item.title, item.slug, item.body, item.excerpt,
                item.meta_description, json.dumps(list(item.keywords)), item.category,
                item.quality_score,
                None if item.quality_score is None else int(passes_threshold(item.quality_score)),
                now,
                now if item.deleted else None,
            ),
        )

    async def get_content(self, content_id: str, include_deleted: bool = False) -> Optional[ContentItem]:
        query = "SELECT * FROM content_items WHERE id = ?"
        if not include_deleted:
            query += " AND deleted_at IS NULL"
        row = await self.fetchone(query, (content_id,))
        return _row_to_item(row) if row else None

    async def list_content(
        self,
        kind: Optional[str] = None,
        limit: Optional[int] = None,
        only_unscored: bool = False,
    ) -> List[ContentItem]:
        """Non-deleted content, newest first."""
        clauses = ["deleted_at IS NULL"]
        params: List[Any] = []
        if kind:
            clauses.append("kind = ?")
            params.append(kind)
        if only_unscored:
            clauses.append("quality_score IS NULL")

        query = f"SELECT * FROM content_items WHERE {' AND '.join(clauses)} ORDER BY created_at DESC, id"
        if limit:
            query += " LIMIT ?"
            params.append(int(limit))

        rows = await self.fetchall(query, tuple(params))
        return [_row_to_item(row) for row in rows]

    async def update_quality_score(self, content_id: str, analysis: QualityAnalysis) -> None:
        """
        Write a score snapshot for one row. Last writer wins. Raises
        ContentNotFoundError when the row does not exist; database errors
        propagate unchanged.
        """
        score = clamp_score(analysis.score)
        now = datetime.utcnow().isoformat()
        issues = json.dumps([issue.model_dump(by_alias=True) for issue in analysis.issues])
        updated = await self.execute(
            """
            UPDATE content_items
            SET quality_score = ?, quality_passed = ?, quality_issues = ?,
                quality_checked_at = ?, updated_at = ?
            WHERE id = ?
            """,
            (score, int(score >= PASS_THRESHOLD), issues, now, now, content_id),
        )
        if updated == 0:
            raise ContentNotFoundError(content_id)

    async def apply_improvement(
        self,
        content_id: str,
        improved_content: str,
        quality_score: Optional[float] = None,
    ) -> ContentItem:
        """Explicit editor save of an improved body."""
        now = datetime.utcnow().isoformat()
        if quality_score is None:
            updated = await self.execute(
                "UPDATE content_items SET body = ?, updated_at = ? WHERE id = ? AND deleted_at IS NULL",
                (improved_content, now, content_id),
            )
        else:
            score = clamp_score(quality_score)
            updated = await self.execute(
                """
                UPDATE content_items
                SET body = ?, quality_score = ?, quality_passed = ?, updated_at = ?
                WHERE id = ? AND deleted_at IS NULL
                """,
                (improved_content, score, int(score >= PASS_THRESHOLD), now, content_id),
            )
        if updated == 0:
            raise ContentNotFoundError(content_id)
        return await self.get_content(content_id)

    async def create_improvement(self, content_id: str, original_content: str) -> int:
        async with self.connect() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO content_improvements (content_id, status, original_content, started_at)
                VALUES (?, 'processing', ?, ?)
                """,
                (content_id, original_content, datetime.utcnow().isoformat()),
            )
            await conn.commit()
            return cursor.lastrowid

    async def complete_improvement(
        self,
        improvement_id: int,
        analysis: QualityAnalysis,
        improvement: ContentImprovement,
    ) -> None:
        await self.execute(
            """
            UPDATE content_improvements
            SET status = 'completed', quality_analysis = ?, improved_content = ?,
                improvement_result = ?, completed_at = ?
            WHERE id = ?
            """,
            (
                analysis.model_dump_json(by_alias=True),
                improvement.improved,
                improvement.model_dump_json(by_alias=True),
                datetime.utcnow().isoformat(),
                improvement_id,
            ),
        )

    async def fail_improvement(
        self,
        improvement_id: int,
        error_message: str,
        analysis: Optional[QualityAnalysis] = None,
    ) -> None:
        await self.execute(
            """
            UPDATE content_improvements
            SET status = 'failed', error_message = ?, quality_analysis = ?, completed_at = ?
            WHERE id = ?
            """,
            (
                error_message,
                analysis.model_dump_json(by_alias=True) if analysis else None,
                datetime.utcnow().isoformat(),
                improvement_id,
            ),
        )

    async def get_improvement(self, improvement_id: int) -> Optional[ImprovementRecord]:
        row = await self.fetchone("SELECT * FROM content_improvements WHERE id = ?", (improvement_id,))
        if not row:
            return None
        return ImprovementRecord(
            id=row["id"],
            content_id=row["content_id"],
            status=row["status"],
            original_content=row["original_content"],
            improved_content=row["improved_content"],
            error_message=row["error_message"],
            started_at=_parse_ts(row["started_at"]),
            completed_at=_parse_ts(row["completed_at"]),
        )

    async def quality_stats(self, limit: int = 100) -> Dict[str, Any]:
        """Score distribution over non-deleted content."""
        row = await self.fetchone(
            """
            SELECT
                COUNT(*) AS total,
                AVG(CASE WHEN quality_score > 0 THEN quality_score END) AS average,
                SUM(CASE WHEN COALESCE(quality_score, 0) >= 70 THEN 1 ELSE 0 END) AS high,
                SUM(CASE WHEN COALESCE(quality_score, 0) >= 50
                          AND COALESCE(quality_score, 0) < 70 THEN 1 ELSE 0 END) AS medium,
                SUM(CASE WHEN COALESCE(quality_score, 0) < 50 THEN 1 ELSE 0 END) AS low
            FROM content_items
            WHERE deleted_at IS NULL
            """
        )
        lowest = await self.fetchall(
            """
            SELECT id, title, slug, kind, quality_score, quality_issues
            FROM content_items
            WHERE deleted_at IS NULL AND COALESCE(quality_score, 0) < ?
            ORDER BY COALESCE(quality_score, 0) ASC, id
            LIMIT ?
            """,
            (PASS_THRESHOLD, limit),
        )
        return {
            "total": row["total"] or 0,
            "averageScore": round(row["average"]) if row["average"] is not None else 0,
            "highQuality": row["high"] or 0,
            "mediumQuality": row["medium"] or 0,
            "lowQuality": row["low"] or 0,
            "lowQualityItems": [
                {
                    "id": r["id"],
                    "title": r["title"],
                    "slug": r["slug"],
                    "type": r["kind"],
                    "qualityScore": r["quality_score"] or 0,
                    "issues": json.loads(r["quality_issues"]) if r["quality_issues"] else [],
                }
                for r in lowest
            ],
        }


def _row_to_item(row) -> ContentItem:
    keywords = json.loads(row["keywords"]) if row["keywords"] else []
    return ContentItem(
        id=row["id"],
        kind=row["kind"],
        title=row["title"],
        slug=row["slug"],
        body=row["body"],
        excerpt=row["excerpt"],
        meta_description=row["meta_description"],
        keywords=keywords,
        category=row["category"],
        quality_score=row["quality_score"],
        deleted=row["deleted_at"] is not None,
    )


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
