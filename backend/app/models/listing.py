"""
Listing Model - Normalized job postings

Stores listings ingested from search/scrape providers. The raw provider
payload is retained in `raw_data` for audit and debugging.

Uniqueness:
    (board_id, external_id) and (board_id, listing_url) are unique.
    Ingestion additionally de-duplicates by URL before inserting.
"""

from sqlalchemy import (
    Column, String, Integer, Text, DateTime, Boolean, JSON, ForeignKey,
    UniqueConstraint, Index,
)
from app.database import Base, TimestampMixin, SoftDeleteMixin
import uuid


class Listing(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "listings"
    __table_args__ = (
        UniqueConstraint("board_id", "external_id", name="uq_listing_board_external_id"),
        UniqueConstraint("board_id", "listing_url", name="uq_listing_board_url"),
        Index("ix_listing_board_active", "board_id", "is_active"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    external_id = Column(String(255), nullable=False)
    board_id = Column(String, ForeignKey("boards.id"), nullable=True, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, default="")
    company_name = Column(String(500), nullable=False)
    company_website = Column(String(2000), nullable=True)
    location = Column(String(500), nullable=False)
    is_remote = Column(Boolean, nullable=False, default=False)
    job_type = Column(String(50), nullable=True)
    experience_level = Column(String(50), nullable=True)
    salary_min = Column(Integer, nullable=True)
    salary_max = Column(Integer, nullable=True)
    salary_currency = Column(String(3), nullable=True)
    salary_period = Column(String(20), nullable=True)
    salary_is_estimate = Column(Boolean, nullable=False, default=False)
    skills = Column(JSON, nullable=False, default=list)
    categories = Column(JSON, nullable=False, default=list)
    apply_url = Column(String(2000), nullable=True)
    listing_url = Column(String(2000), nullable=False, index=True)
    source = Column(String(100), nullable=False)
    posted_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    raw_data = Column(JSON, nullable=True)
