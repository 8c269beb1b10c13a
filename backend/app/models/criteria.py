from sqlalchemy import Column, String, Integer, Boolean, JSON, ForeignKey
from app.database import Base, TimestampMixin, SoftDeleteMixin
import uuid


class SearchCriteria(TimestampMixin, SoftDeleteMixin, Base):
    """
    Named filter set used to build ingestion queries and pre-filter matches.

    At most one row per profile has is_default=True; the criteria service
    clears the others in the same transaction as the write.
    """

    __tablename__ = "search_criteria"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_profile_id = Column(String, ForeignKey("user_profiles.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    keywords = Column(JSON, nullable=False, default=list)
    locations = Column(JSON, nullable=False, default=list)
    job_type = Column(String(50), nullable=True)
    experience_level = Column(String(50), nullable=True)
    min_salary = Column(Integer, nullable=True)
    max_salary = Column(Integer, nullable=True)
    salary_currency = Column(String(3), nullable=True)
    is_remote = Column(Boolean, nullable=True)
    industries = Column(JSON, nullable=False, default=list)
    companies = Column(JSON, nullable=False, default=list)
    job_titles = Column(JSON, nullable=False, default=list)
    skills_included = Column(JSON, nullable=False, default=list)
    skills_excluded = Column(JSON, nullable=False, default=list)
    days_posted = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
