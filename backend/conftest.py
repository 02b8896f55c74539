from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

import database
from database import init_db
from models import InsuranceRequirement, Project, ProjectSubcontractor, Subcontractor
from schemas.verification import CoverageLine, CoverageRequirement, ExtractedPolicyData
from services.auth import create_session, create_user

NOW = datetime(2026, 10, 19, 9, 0)
VALID_ABN = "51824753556"


def make_policy(**overrides) -> ExtractedPolicyData:
    """A certificate that satisfies the standard project requirements"""
    data = {
        "insured_name": "Harbour Scaffolding Pty Ltd",
        "insured_identifier": VALID_ABN,
        "insurer_name": "QBE Insurance (Australia) Limited",
        "policy_number": "QBEPL12345678",
        "period_start": date(2026, 7, 1),
        "period_end": date(2027, 6, 30),
        "coverages": [
            CoverageLine(type="public_liability", limit=20_000_000, limit_type="per_occurrence",
                         excess=5_000, principal_indemnity=True, cross_liability=True,
                         waiver_of_subrogation=True),
            CoverageLine(type="workers_comp", jurisdiction="NSW"),
        ],
        "extraction_confidence": 0.95,
    }
    data.update(overrides)
    return ExtractedPolicyData(**data)


def standard_requirements() -> list[CoverageRequirement]:
    return [
        CoverageRequirement(coverage_type="public_liability", minimum_limit=20_000_000,
                            maximum_excess=10_000, principal_indemnity_required=True,
                            cross_liability_required=True, waiver_required=True),
        CoverageRequirement(coverage_type="workers_comp"),
    ]


# HTTP tests run against the real clock, so their certificate is dated around today
CERT_START = date.today() - timedelta(days=90)
CERT_END = CERT_START + timedelta(days=364)
PROJECT_END = date.today() + timedelta(days=180)

CERTIFICATE_TEXT = f"""CERTIFICATE OF CURRENCY
Insurer: QBE Insurance (Australia) Limited
Insured: Harbour Scaffolding Pty Ltd
ABN: 51 824 753 556
Policy Number: QBEPL12345678
Period of Insurance: {CERT_START:%d/%m/%Y} to {CERT_END:%d/%m/%Y}
Public Liability: $20,000,000 per occurrence
Excess: $5,000
Principal Indemnity: Yes
Cross Liability: Yes
Waiver of Subrogation: Yes
Workers Compensation: NSW
"""


@pytest.fixture
def db():
    init_db("sqlite:///:memory:")
    session = database.get_db()
    yield session
    session.close()


@pytest.fixture
def client(db):
    from main import app
    return TestClient(app)


@pytest.fixture
def admin(db):
    return create_user(db, "admin@builder.com.au", "password123", "Ada Admin", "admin")


@pytest.fixture
def manager(db):
    return create_user(db, "pm@builder.com.au", "password123", "Pat Manager", "project_manager")


@pytest.fixture
def admin_headers(db, admin):
    return {"Authorization": f"Bearer {create_session(db, admin.id)}"}


@pytest.fixture
def manager_headers(db, manager):
    return {"Authorization": f"Bearer {create_session(db, manager.id)}"}


@pytest.fixture
def assignment(db):
    project = Project(name="Barangaroo Tower C", end_date=date(2027, 3, 31), jurisdiction="NSW")
    for position, req in enumerate(standard_requirements()):
        project.requirements.append(InsuranceRequirement(position=position, **req.model_dump()))
    subcontractor = Subcontractor(name="Harbour Scaffolding Pty Ltd", abn=VALID_ABN)
    db.add_all([project, subcontractor])
    db.flush()
    link = ProjectSubcontractor(project_id=project.id, subcontractor_id=subcontractor.id)
    db.add(link)
    db.commit()
    return link
