"""
UserProfile Model - Candidate data used for matching

Experience, education, certification and language entries are stored as
JSON lists of small records; the API schemas validate their shape.
"""

from sqlalchemy import Column, String, Text, Boolean, JSON
from app.database import Base, TimestampMixin, SoftDeleteMixin
import uuid


class UserProfile(TimestampMixin, SoftDeleteMixin, Base):
    """
    Candidate profile.

    Attributes:
        skills: List of skill names
        experience: [{title, company, start_date, end_date, current, description}]
        education: [{institution, degree, field_of_study, start_date, end_date, current}]
        certifications: [{name, issuer, issue_date, expiry_date}]
        languages: [{language, proficiency}]
        preferences: Free-form blob (salary band, locations, remote preference)
    """

    __tablename__ = "user_profiles"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    title = Column(String(255), nullable=True)
    summary = Column(Text, nullable=True)
    skills = Column(JSON, nullable=False, default=list)
    experience = Column(JSON, nullable=False, default=list)
    education = Column(JSON, nullable=False, default=list)
    certifications = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=list)
    resume_url = Column(String(2000), nullable=True)
    linkedin_url = Column(String(2000), nullable=True)
    github_url = Column(String(2000), nullable=True)
    website_url = Column(String(2000), nullable=True)
    preferences = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
