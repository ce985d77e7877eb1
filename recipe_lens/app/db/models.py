from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from recipe_lens.app.db.base import Base


class DiscoveredRecipeSite(Base):
    __tablename__ = "discovered_recipe_sites"

    id = Column(Integer, primary_key=True)
    hostname = Column(String, nullable=False, unique=True, index=True)
    detection_method = Column(String, nullable=False)
    discovered_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class RecipeImportAttempt(Base):
    __tablename__ = "recipe_import_attempts"

    id = Column(Integer, primary_key=True)
    url = Column(Text, nullable=False)
    site_category = Column(String, nullable=False, index=True)
    parser_version = Column(String, nullable=False, index=True)
    strategy_used = Column(String, nullable=False)
    success = Column(Boolean, nullable=False, default=False)
    confidence_score = Column(String)
    ingredients_count = Column(Integer, nullable=False, default=0)
    steps_count = Column(Integer, nullable=False, default=0)
    html_pattern = Column(String)
    raw_html_sample = Column(Text)
    error_message = Column(Text)
    user_id = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (Index("ix_import_attempts_category_version", "site_category", "parser_version"),)


class ExtractionPattern(Base):
    __tablename__ = "extraction_patterns"

    id = Column(Integer, primary_key=True)
    site_category = Column(String, nullable=False)
    html_pattern = Column(String, nullable=False)
    extraction_method = Column(String, nullable=False)
    parser_version = Column(String, nullable=False)
    success_count = Column(Integer, nullable=False, default=0)
    total_count = Column(Integer, nullable=False, default=0)
    success_rate = Column(Float, nullable=False, default=0.0)
    last_attempt_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint(
            "site_category",
            "html_pattern",
            "extraction_method",
            "parser_version",
            name="uq_extraction_pattern_key",
        ),
    )
