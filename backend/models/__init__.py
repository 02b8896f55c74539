from models.base import CocDocument, Verification, NotificationEvent, AuditLog, utcnow, to_utc_naive
from models.auth import User, AuthSession
from models.compliance import (
    Project, Subcontractor, InsuranceRequirement, ProjectSubcontractor, ComplianceException
)
