"""
CoC Compliance API Test Suite
Exercises the HTTP surface end to end with realistic certificate samples
"""
import inspect
from datetime import timedelta

import pytest
from fastapi.routing import APIRoute

from conftest import CERT_END, CERTIFICATE_TEXT, PROJECT_END, make_policy
from errors import ExtractionUnavailable
from services.extraction import get_extractor
from services.mock.coc import mock_coc_extract

# Doctored copy: same policy, expiry pushed out a month
DOCTORED_CERTIFICATE_TEXT = CERTIFICATE_TEXT.replace(
    f"{CERT_END:%d/%m/%Y}", f"{CERT_END + timedelta(days=30):%d/%m/%Y}")

UNDERINSURED_CERTIFICATE_TEXT = CERTIFICATE_TEXT.replace("$20,000,000", "$5,000,000")


@pytest.fixture
def mock_extraction(client):
    client.app.dependency_overrides[get_extractor] = lambda: mock_coc_extract
    yield
    client.app.dependency_overrides.clear()


@pytest.fixture
def project_setup(client, admin_headers):
    project = client.post("/api/projects", headers=admin_headers, json={
        "name": "Barangaroo Tower C", "end_date": PROJECT_END.isoformat(), "jurisdiction": "nsw",
    }).json()
    client.put(f"/api/projects/{project['id']}/requirements", headers=admin_headers, json={
        "requirements": [
            {"coverage_type": "public_liability", "minimum_limit": 20000000, "maximum_excess": 10000,
             "principal_indemnity_required": True, "cross_liability_required": True,
             "waiver_required": True},
            {"coverage_type": "workers_comp"},
        ],
    })
    sub = client.post("/api/subcontractors", headers=admin_headers, json={
        "name": "Harbour Scaffolding Pty Ltd", "abn": "51 824 753 556",
    }).json()
    assignment = client.post(f"/api/projects/{project['id']}/assignments", headers=admin_headers,
                             json={"subcontractor_id": sub["id"]}).json()
    return {"project": project, "subcontractor": sub, "assignment": assignment}


def upload(client, assignment_id, text, **extra):
    return client.post(f"/api/assignments/{assignment_id}/documents",
                       json={"certificate_text": text, **extra})


def test_root(client):
    assert client.get("/").json()["status"] == "online"


def test_signup_login_and_me(client):
    signup = client.post("/api/auth/signup", json={
        "email": "RM@builder.com.au", "password": "s3cure-pass", "role": "risk_manager",
    })
    assert signup.status_code == 200
    assert signup.json()["user"]["role"] == "risk_manager"

    login = client.post("/api/auth/login", json={"email": "rm@builder.com.au", "password": "s3cure-pass"})
    token = login.json()["token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["authenticated"] is True
    assert me["user"]["email"] == "rm@builder.com.au"

    bad = client.post("/api/auth/login", json={"email": "rm@builder.com.au", "password": "nope"})
    assert bad.status_code == 401


def test_project_setup_and_assignment(client, project_setup):
    project, assignment = project_setup["project"], project_setup["assignment"]
    assert project["jurisdiction"] == "NSW"
    assert assignment["status"] == "pending"
    assert assignment["version"] == 1

    requirements = client.get(f"/api/projects/{project['id']}/requirements").json()["requirements"]
    assert [r["coverage_type"] for r in requirements] == ["public_liability", "workers_comp"]


def test_duplicate_assignment_is_conflict(client, admin_headers, project_setup):
    project, sub = project_setup["project"], project_setup["subcontractor"]
    response = client.post(f"/api/projects/{project['id']}/assignments", headers=admin_headers,
                           json={"subcontractor_id": sub["id"]})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "conflict"


@pytest.mark.parametrize("requirements", [
    [{"coverage_type": "public_liability"}, {"coverage_type": "public_liability"}],
    [{"coverage_type": "pet_insurance"}],
    [{"coverage_type": "public_liability", "minimum_limit": -1}],
])
def test_malformed_requirement_set_is_validation_error(client, admin_headers, project_setup, requirements):
    project_id = project_setup["project"]["id"]
    response = client.put(f"/api/projects/{project_id}/requirements", headers=admin_headers,
                          json={"requirements": requirements})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "validation_error"
    # Existing set is untouched
    kept = client.get(f"/api/projects/{project_id}/requirements").json()["requirements"]
    assert len(kept) == 2


def test_unknown_assignment_is_not_found(client, mock_extraction):
    response = upload(client, 999, CERTIFICATE_TEXT)
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "not_found"


def test_compliant_certificate_upload(client, mock_extraction, project_setup):
    assignment_id = project_setup["assignment"]["id"]

    response = upload(client, assignment_id, CERTIFICATE_TEXT, file_name="coc.pdf",
                      producer="Guidewire PolicyCenter")

    assert response.status_code == 200
    body = response.json()
    assert body["verdict"]["status"] == "pass"
    assert body["verdict"]["decided_by"] == "all_clear"
    assert body["compliance"]["current_status"] == "compliant"
    assignment = client.get(f"/api/assignments/{assignment_id}").json()
    assert assignment["status"] == "compliant"
    assert assignment["last_verification_id"] == body["verification_id"]

    stored = client.get(f"/api/verifications/{body['verification_id']}").json()
    assert stored["verdict"]["status"] == "pass"
    assert stored["extracted_data"]["insured_identifier"] == "51824753556"


def test_underinsured_upload_fails_with_deficiency(client, mock_extraction, project_setup):
    body = upload(client, project_setup["assignment"]["id"], UNDERINSURED_CERTIFICATE_TEXT).json()
    assert body["verdict"]["status"] == "fail"
    assert [d["kind"] for d in body["verdict"]["deficiencies"]] == ["insufficient_limit"]
    assert body["compliance"]["current_status"] == "non_compliant"


def test_doctored_resubmission_is_blocked(client, mock_extraction, project_setup):
    assignment_id = project_setup["assignment"]["id"]
    upload(client, assignment_id, CERTIFICATE_TEXT)

    body = upload(client, assignment_id, DOCTORED_CERTIFICATE_TEXT, source="portal").json()

    assert body["verdict"]["status"] == "fail"
    assert body["verdict"]["decided_by"] == "fraud_blocked"
    assert body["verdict"]["fraud_signal"]["risk_score"] == 95
    assert "fraud_detected" in [d["kind"] for d in body["verdict"]["deficiencies"]]


def test_reprocess_uses_the_same_pipeline(client, mock_extraction, project_setup):
    first = upload(client, project_setup["assignment"]["id"], CERTIFICATE_TEXT).json()

    response = client.post(f"/api/documents/{first['document_id']}/reprocess")

    assert response.status_code == 200
    body = response.json()
    assert body["document_id"] == first["document_id"]
    assert body["verification_id"] != first["verification_id"]
    assert body["verdict"]["status"] == "pass"


def test_pre_extracted_submission_with_stale_version_conflicts(client, project_setup):
    assignment_id = project_setup["assignment"]["id"]
    payload = {"policy": make_policy().model_dump(mode="json"), "expected_version": 1}

    assert client.post(f"/api/assignments/{assignment_id}/verifications", json=payload).status_code == 200
    stale = client.post(f"/api/assignments/{assignment_id}/verifications", json=payload)

    assert stale.status_code == 409
    assert stale.json()["detail"]["code"] == "conflict"


def test_extraction_outage_is_503_and_writes_nothing(client, project_setup):
    def unavailable(text):
        raise ExtractionUnavailable("Extraction service unavailable")

    client.app.dependency_overrides[get_extractor] = lambda: unavailable
    try:
        response = upload(client, project_setup["assignment"]["id"], CERTIFICATE_TEXT)
    finally:
        client.app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "collaborator_unavailable"
    assignment = client.get(f"/api/assignments/{project_setup['assignment']['id']}").json()
    assert assignment["status"] == "pending"
    assert assignment["last_verification_id"] is None


def test_exception_flow_over_http(client, mock_extraction, admin_headers, manager_headers, project_setup):
    assignment_id = project_setup["assignment"]["id"]
    upload(client, assignment_id, UNDERINSURED_CERTIFICATE_TEXT)

    created = client.post("/api/exceptions", headers=manager_headers, json={
        "assignment_id": assignment_id,
        "issue_summary": "Public liability limit is $5M",
        "reason": "Renewal at $20M bound from next week",
        "expiration_type": "fixed_duration",
        "duration_days": 14,
    })
    assert created.status_code == 201
    exc = created.json()
    assert exc["status"] == "pending_approval"

    assert client.post(f"/api/exceptions/{exc['id']}/approve",
                       headers=manager_headers).status_code == 403
    approved = client.post(f"/api/exceptions/{exc['id']}/approve", headers=admin_headers).json()
    assert approved["status"] == "active"
    assert client.get(f"/api/assignments/{assignment_id}").json()["status"] == "exception"

    again = client.post(f"/api/exceptions/{exc['id']}/approve", headers=admin_headers)
    assert again.status_code == 409

    # A compliant certificate supersedes the waiver
    upload(client, assignment_id, CERTIFICATE_TEXT)
    listed = client.get(f"/api/assignments/{assignment_id}/exceptions", headers=admin_headers).json()
    assert listed[0]["status"] == "resolved"
    assert listed[0]["resolution_type"] == "coc_updated"
    assert client.get(f"/api/assignments/{assignment_id}").json()["status"] == "compliant"


def test_permanent_exception_checks_password(client, mock_extraction, admin_headers, project_setup):
    assignment_id = project_setup["assignment"]["id"]
    upload(client, assignment_id, UNDERINSURED_CERTIFICATE_TEXT)
    payload = {
        "assignment_id": assignment_id,
        "issue_summary": "Principal holds its own project policy",
        "reason": "Covered under the principal-arranged contract works policy",
        "expiration_type": "permanent",
    }

    missing = client.post("/api/exceptions", headers=admin_headers, json=payload)
    assert missing.status_code == 400
    wrong = client.post("/api/exceptions", headers=admin_headers, json={**payload, "password": "guess"})
    assert wrong.status_code == 401
    ok = client.post("/api/exceptions", headers=admin_headers, json={**payload, "password": "password123"})
    assert ok.status_code == 201
    assert ok.json()["status"] == "active"


def test_exceptions_require_authentication(client, project_setup):
    response = client.post("/api/exceptions", json={
        "assignment_id": project_setup["assignment"]["id"],
        "issue_summary": "x",
        "reason": "y",
    })
    assert response.status_code == 401


def test_expiry_sweep_endpoint(client, admin_headers):
    response = client.post("/api/exceptions/expire", headers=admin_headers)
    assert response.json() == {"expired": [], "skipped": []}


def test_expiry_sweep_requires_approver_role(client, manager_headers):
    response = client.post("/api/exceptions/expire", headers=manager_headers)
    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "forbidden"


def test_database_handlers_run_in_the_threadpool(client):
    reference_paths = ("/api/coverage-types", "/api/insurers", "/api/jurisdictions")
    for route in client.app.routes:
        if isinstance(route, APIRoute) and not route.path.startswith(reference_paths):
            assert not inspect.iscoroutinefunction(route.endpoint), route.path


def test_reference_endpoints(client):
    coverage = client.get("/api/coverage-types").json()
    assert coverage["workers_comp"]["jurisdiction_bound"] is True
    insurers = client.get("/api/insurers").json()
    assert "QBE Insurance (Australia) Limited" in insurers["insurers"]
    nsw = client.get("/api/jurisdictions/nsw").json()
    assert nsw["state"] == "NSW"
    assert client.get("/api/jurisdictions/XX").status_code == 404
