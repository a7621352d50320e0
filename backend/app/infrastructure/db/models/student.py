"""
Student SQLModel for Score Portal

Roster entries keyed by the human-readable student number. Created and
overwritten by roster import; the roster is authoritative.
"""

from typing import Optional

from sqlalchemy import Column, String
from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class StudentBase(SQLModel):
    """Fields shared by the table model and the create schema."""

    external_id: str = Field(
        ...,
        max_length=50,
        sa_column=Column(String(50), unique=True, index=True, nullable=False),
        description="Student number shown to users"
    )
    display_name: str = Field(
        default="",
        max_length=100,
        description="Student's display name"
    )


class Student(StudentBase, UUIDMixin, TimestampMixin, table=True):
    """Roster table."""

    __tablename__ = "students"

    credential_hash: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Salted hash of the login credential (verified elsewhere)"
    )


class StudentCreate(StudentBase):
    """Roster import row after column mapping."""

    credential: Optional[str] = Field(
        default=None,
        description="Plain credential from the roster file; hashed before storage"
    )
