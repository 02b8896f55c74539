from sqlalchemy import (Column, Integer, String, Text, DateTime, Date, Float, Boolean,
                        ForeignKey, UniqueConstraint)
from sqlalchemy.orm import relationship
from database import Base
from models.base import utcnow


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    name = Column(String(255), nullable=False)
    end_date = Column(Date, nullable=True)
    jurisdiction = Column(String(10), nullable=True)

    requirements = relationship("InsuranceRequirement", back_populates="project",
                                order_by="InsuranceRequirement.position",
                                cascade="all, delete-orphan")


class Subcontractor(Base):
    __tablename__ = "subcontractors"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    name = Column(String(255), nullable=False)
    abn = Column(String(20), nullable=True, index=True)
    contact_email = Column(String(255), nullable=True)
    broker_email = Column(String(255), nullable=True)


class InsuranceRequirement(Base):
    __tablename__ = "insurance_requirements"
    __table_args__ = (UniqueConstraint("project_id", "coverage_type"),)

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    coverage_type = Column(String(40), nullable=False)
    minimum_limit = Column(Float, nullable=True)
    maximum_excess = Column(Float, nullable=True)
    principal_indemnity_required = Column(Boolean, default=False)
    cross_liability_required = Column(Boolean, default=False)
    waiver_required = Column(Boolean, default=False)
    jurisdiction_must_match = Column(Boolean, nullable=True)

    project = relationship("Project", back_populates="requirements")


class ProjectSubcontractor(Base):
    """A subcontractor's assignment to a project and its compliance status."""
    __tablename__ = "project_subcontractors"
    __table_args__ = (UniqueConstraint("project_id", "subcontractor_id"),)

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    subcontractor_id = Column(Integer, ForeignKey("subcontractors.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")
    version = Column(Integer, nullable=False)
    last_verification_id = Column(Integer, nullable=True)

    project = relationship("Project")
    subcontractor = relationship("Subcontractor")
    exceptions = relationship("ComplianceException", back_populates="assignment",
                              order_by="ComplianceException.id")

    # Stale writes raise StaleDataError instead of silently overwriting
    __mapper_args__ = {"version_id_col": version}


class ComplianceException(Base):
    __tablename__ = "compliance_exceptions"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    assignment_id = Column(Integer, ForeignKey("project_subcontractors.id"), nullable=False, index=True)
    verification_id = Column(Integer, ForeignKey("verifications.id"), nullable=True)
    issue_summary = Column(Text, nullable=False)
    reason = Column(Text, nullable=False)
    risk_level = Column(String(10), default="medium")
    expiration_type = Column(String(20), nullable=False, default="until_resolved")
    expires_at = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default="pending_approval", index=True)
    created_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolution_type = Column(String(30), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    supporting_document_url = Column(String(500), nullable=True)

    assignment = relationship("ProjectSubcontractor", back_populates="exceptions")
