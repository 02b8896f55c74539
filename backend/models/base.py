from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, Date, JSON, Float, ForeignKey
from sqlalchemy.orm import relationship
from database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value):
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class CocDocument(Base):
    __tablename__ = "coc_documents"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    assignment_id = Column(Integer, ForeignKey("project_subcontractors.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=True)
    document_hash = Column(String(64), index=True, nullable=True)
    document_text = Column(Text, nullable=True)
    source = Column(String(20), default="upload")
    processing_status = Column(String(20), default="pending")
    file_metadata = Column(JSON, nullable=True)

    verifications = relationship("Verification", back_populates="document",
                                 order_by="Verification.id")


class Verification(Base):
    """One immutable verdict per processed submission. Rows are never updated."""
    __tablename__ = "verifications"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    document_id = Column(Integer, ForeignKey("coc_documents.id"), nullable=False, index=True)
    assignment_id = Column(Integer, ForeignKey("project_subcontractors.id"), nullable=False, index=True)
    status = Column(String(10), nullable=False)
    decided_by = Column(String(40), nullable=False)
    confidence_score = Column(Float, nullable=True)
    extracted_data = Column(JSON, nullable=True)
    policy_number = Column(String(100), nullable=True, index=True)
    period_end = Column(Date, nullable=True)
    checks = Column(JSON, nullable=False, default=list)
    deficiencies = Column(JSON, nullable=False, default=list)
    fraud = Column(JSON, nullable=True)

    document = relationship("CocDocument", back_populates="verifications")


class NotificationEvent(Base):
    """Outbox of engine events. Rendering and delivery happen elsewhere."""
    __tablename__ = "notification_events"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    event_type = Column(String(40), nullable=False, index=True)
    priority = Column(String(10), default="normal")
    assignment_id = Column(Integer, ForeignKey("project_subcontractors.id"), nullable=False, index=True)
    verification_id = Column(Integer, ForeignKey("verifications.id"), nullable=True)
    exception_id = Column(Integer, ForeignKey("compliance_exceptions.id"), nullable=True)
    payload = Column(JSON, nullable=True)
    due_date = Column(DateTime, nullable=True)
    dispatched_at = Column(DateTime, nullable=True)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    entity_type = Column(String(40), nullable=False)
    entity_id = Column(Integer, nullable=False)
    action = Column(String(60), nullable=False)
    details = Column(JSON, nullable=True)
