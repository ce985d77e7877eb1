import asyncio
from datetime import datetime
from typing import Any, Callable, List, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recipe_lens.app.db import models
from recipe_lens.app.services.url_parsing.models import (
    ConfidenceScore,
    DetectionMethod,
    ImportAttempt,
    ParserVersion,
    PatternStat,
    SiteCategory,
    StrategyName,
)

T = TypeVar("T")


def get_discovered_sites(db: Session) -> List[str]:
    return list(db.scalars(select(models.DiscoveredRecipeSite.hostname)))


def upsert_discovered_site(db: Session, hostname: str, method: DetectionMethod) -> models.DiscoveredRecipeSite:
    stmt = select(models.DiscoveredRecipeSite).where(models.DiscoveredRecipeSite.hostname == hostname)
    site = db.scalars(stmt).first()
    now = datetime.utcnow()
    if site is None:
        site = models.DiscoveredRecipeSite(
            hostname=hostname,
            detection_method=method.value,
            discovered_at=now,
            last_seen_at=now,
        )
        db.add(site)
    else:
        site.last_seen_at = now
    db.commit()
    db.refresh(site)
    return site


def append_import_attempt(db: Session, attempt: ImportAttempt) -> models.RecipeImportAttempt:
    row = models.RecipeImportAttempt(
        url=attempt.url,
        site_category=attempt.site_category.value,
        parser_version=attempt.parser_version.value,
        strategy_used=attempt.strategy_used.value,
        success=attempt.success,
        confidence_score=attempt.confidence_score.value if attempt.confidence_score else None,
        ingredients_count=attempt.ingredients_count,
        steps_count=attempt.steps_count,
        html_pattern=attempt.html_pattern,
        raw_html_sample=attempt.raw_html_sample,
        error_message=attempt.error_message,
        user_id=attempt.user_id,
        created_at=attempt.created_at,
    )
    db.add(row)
    db.commit()
    return row


def _pattern_row(
    db: Session, category: SiteCategory, pattern: str, method: StrategyName, version: ParserVersion
) -> Optional[models.ExtractionPattern]:
    stmt = select(models.ExtractionPattern).where(
        models.ExtractionPattern.site_category == category.value,
        models.ExtractionPattern.html_pattern == pattern,
        models.ExtractionPattern.extraction_method == method.value,
        models.ExtractionPattern.parser_version == version.value,
    )
    return db.scalars(stmt).first()


def upsert_extraction_pattern(
    db: Session,
    category: SiteCategory,
    pattern: str,
    method: StrategyName,
    version: ParserVersion,
    success: bool,
) -> models.ExtractionPattern:
    row = _pattern_row(db, category, pattern, method, version)
    if row is None:
        row = models.ExtractionPattern(
            site_category=category.value,
            html_pattern=pattern,
            extraction_method=method.value,
            parser_version=version.value,
            success_count=0,
            total_count=0,
        )
        db.add(row)
        try:
            db.flush()
        except IntegrityError:
            # Another writer created the row first
            db.rollback()
            row = _pattern_row(db, category, pattern, method, version)
    row.success_count = (row.success_count or 0) + (1 if success else 0)
    row.total_count = (row.total_count or 0) + 1
    row.success_rate = row.success_count * 100.0 / row.total_count
    row.last_attempt_at = datetime.utcnow()
    db.commit()
    return row


def query_best_pattern(db: Session, category: SiteCategory, pattern: str) -> Optional[PatternStat]:
    stmt = (
        select(models.ExtractionPattern)
        .where(
            models.ExtractionPattern.site_category == category.value,
            models.ExtractionPattern.html_pattern == pattern,
            models.ExtractionPattern.total_count > 0,
        )
        .order_by(models.ExtractionPattern.success_rate.desc(), models.ExtractionPattern.total_count.desc())
    )
    row = db.scalars(stmt).first()
    if row is None:
        return None
    return PatternStat(
        method=StrategyName(row.extraction_method),
        success_rate=row.success_rate,
        total_attempts=row.total_count,
        last_attempt_at=row.last_attempt_at,
    )


def list_import_attempts(
    db: Session, category: SiteCategory, version: ParserVersion, since: datetime
) -> List[ImportAttempt]:
    stmt = (
        select(models.RecipeImportAttempt)
        .where(
            models.RecipeImportAttempt.site_category == category.value,
            models.RecipeImportAttempt.parser_version == version.value,
            models.RecipeImportAttempt.created_at >= since,
        )
        .order_by(models.RecipeImportAttempt.created_at.asc())
    )
    return [
        ImportAttempt(
            url=row.url,
            site_category=SiteCategory(row.site_category),
            parser_version=ParserVersion(row.parser_version),
            strategy_used=StrategyName(row.strategy_used),
            success=row.success,
            confidence_score=ConfidenceScore(row.confidence_score) if row.confidence_score else None,
            ingredients_count=row.ingredients_count,
            steps_count=row.steps_count,
            html_pattern=row.html_pattern,
            raw_html_sample=row.raw_html_sample,
            error_message=row.error_message,
            user_id=row.user_id,
            created_at=row.created_at,
        )
        for row in db.scalars(stmt)
    ]


class SqlRecipeStore:
    """RecipeStore backed by the three SQLAlchemy tables; one session per call, run in the default executor."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    async def _run(self, operation: Callable[..., T], *args: Any) -> T:
        def call() -> T:
            with self.session_factory() as db:
                return operation(db, *args)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, call)

    async def get_discovered_sites(self) -> List[str]:
        return await self._run(get_discovered_sites)

    async def upsert_discovered_site(self, hostname: str, method: DetectionMethod) -> None:
        await self._run(upsert_discovered_site, hostname, method)

    async def append_import_attempt(self, attempt: ImportAttempt) -> None:
        await self._run(append_import_attempt, attempt)

    async def upsert_extraction_pattern(
        self,
        category: SiteCategory,
        pattern: str,
        method: StrategyName,
        version: ParserVersion,
        success: bool,
    ) -> None:
        await self._run(upsert_extraction_pattern, category, pattern, method, version, success)

    async def query_best_pattern(self, category: SiteCategory, pattern: str) -> Optional[PatternStat]:
        return await self._run(query_best_pattern, category, pattern)

    async def list_import_attempts(
        self, category: SiteCategory, version: ParserVersion, since: datetime
    ) -> List[ImportAttempt]:
        return await self._run(list_import_attempts, category, version, since)
