from datetime import datetime, timezone
import uuid
import enum
from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    Enum,
    JSON,
    Boolean,
    Integer,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from storereports.core.errors import NotFound
from storereports.db.base import Base


def utc_now():
    return datetime.now(timezone.utc)


class QuestionType(str, enum.Enum):  # what kind of value an answer carries
    TEXT = "text"
    NUMBER = "number"
    CHOICE = "choice"
    DATE = "date"


class Template(Base):  # admin-authored schema
    __tablename__ = "templates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    user_id = Column(String, nullable=True)  # owning user, opaque identity id

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    questions = relationship(
        "Question",
        back_populates="template",
        order_by="Question.order_index.asc()",
        cascade="all, delete-orphan",
    )


class Question(Base):
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id = Column(Uuid, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)

    text = Column(Text, nullable=False)
    type = Column(Enum(QuestionType), nullable=False, default=QuestionType.TEXT)
    required = Column(Boolean, nullable=False, default=True)
    # only choice questions carry options; NULL otherwise
    options = Column(JSON, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    template = relationship("Template", back_populates="questions")


class Store(Base):  # referenced by reports, otherwise opaque to the engine
    __tablename__ = "stores"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    location = Column(String, nullable=False, default="")
    manager = Column(String, nullable=False, default="")
    user_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    reports = relationship("Report", back_populates="store", cascade="all, delete-orphan")


class Report(Base):  # one store's instance of a template
    __tablename__ = "reports"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id = Column(Uuid, ForeignKey("templates.id"), nullable=False, index=True)
    store_id = Column(Uuid, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=True)  # acting user of the last submission

    completed = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    store = relationship("Store", back_populates="reports")
    template = relationship("Template")
    answers = relationship(
        "ReportAnswer",
        back_populates="report",
        cascade="all, delete-orphan",
    )


class ReportAnswer(Base):
    __tablename__ = "report_answers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    report_id = Column(Uuid, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)

    # free text, number, chosen option or ISO date, stored as JSON
    value = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    report = relationship("Report", back_populates="answers")
    question = relationship("Question")


def to_uuid(value, kind: str = "record") -> uuid.UUID:
    """Parse an id from the outside world; a malformed id can't match any row."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise NotFound(f"{kind.capitalize()} '{value}' not found.", code=f"UNKNOWN_{kind.upper()}")
