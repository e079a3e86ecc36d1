"""
Follow-Up Unit - SQLAlchemy ORM Models
Accounts, tracked persons and their weekly follow-up reports.
"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Boolean, Index
from sqlalchemy.orm import relationship
from ..database import Base


class UserDB(Base):
    """User account. Role is "user" or "admin"."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)  # UUID
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True, index=True)  # Set by Google sign-in
    google_id = Column(String(255), unique=True, nullable=True, index=True)
    password_hash = Column(String(255), nullable=True)  # Google-only accounts have no password
    role = Column(String(20), nullable=False, default="user")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    persons = relationship("PersonDB", back_populates="owner")


class PersonDB(Base):
    """A tracked contact registered by a user."""
    __tablename__ = "persons"
    __table_args__ = (
        Index("ix_persons_created_by_created_at", "created_by", "created_at"),
    )

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False, index=True)
    address = Column(String(500), nullable=False)
    inviter = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True, default="")

    # Owner of the record
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Drives expected-week accounting; never changed by edits
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owner = relationship("UserDB", back_populates="persons")
    reports = relationship("WeeklyReportDB", back_populates="person", cascade="all, delete-orphan")


class WeeklyReportDB(Base):
    """A weekly follow-up report filed against a person."""
    __tablename__ = "weekly_reports"
    __table_args__ = (
        Index("ix_weekly_reports_person_week", "person_id", "week_of"),
    )

    id = Column(String(36), primary_key=True)  # UUID
    person_id = Column(String(36), ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True)
    contacted = Column(Boolean, nullable=False)
    response = Column(Text, nullable=False)
    week_of = Column(DateTime, nullable=False, index=True)  # Which week this report belongs to
    reported_by = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    person = relationship("PersonDB", back_populates="reports")
    reporter = relationship("UserDB")
