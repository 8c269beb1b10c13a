"""
Board Model - External job boards configured for scraping

A board is polled every `search_frequency_hours`; `last_searched_at`
records the last successful ingestion run against it.
"""

from datetime import timedelta

from sqlalchemy import Column, String, Integer, Text, DateTime, Boolean, JSON
from app.database import Base, TimestampMixin, SoftDeleteMixin
import uuid


class Board(TimestampMixin, SoftDeleteMixin, Base):
    """
    Scraping source entity.

    Attributes:
        domain: Host used to scope provider searches (e.g. "indeed.com")
        type: Board category ("general", "tech", "remote", ...)
        authentication_details: Opaque credentials blob
        search_parameters: Provider-specific query parameter mapping
    """

    __tablename__ = "boards"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    url = Column(String(2000), nullable=False)
    domain = Column(String(255), nullable=True)
    type = Column(String(50), nullable=False, default="general")
    description = Column(Text, nullable=True)
    requires_authentication = Column(Boolean, nullable=False, default=False)
    authentication_details = Column(JSON, nullable=True)
    search_parameters = Column(JSON, nullable=False, default=dict)
    search_frequency_hours = Column(Integer, nullable=False, default=24)
    last_searched_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    def is_due(self, now) -> bool:
        if not self.last_searched_at:
            return True
        return self.last_searched_at + timedelta(hours=self.search_frequency_hours) <= now
