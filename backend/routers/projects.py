import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError

from database import get_session
from errors import ConflictError, EngineError, NotFoundError, raise_http_error
from models import Project, ProjectSubcontractor, Subcontractor
from schemas.compliance import (
    AssignmentInput, AssignmentView, ProjectInput, ProjectView, RequirementSetInput,
    SubcontractorInput, SubcontractorView,
)
from services.auth import require_user
from services.db_ops import record_audit, run_in_transaction
from services.requirements import get_project, get_requirements, replace_requirements
from services.verification import get_assignment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["projects"])


def _assignment_view(assignment: ProjectSubcontractor) -> AssignmentView:
    return AssignmentView(
        id=assignment.id,
        project_id=assignment.project_id,
        subcontractor_id=assignment.subcontractor_id,
        status=assignment.status,
        version=assignment.version,
        last_verification_id=assignment.last_verification_id,
    )


def _project_view(project: Project) -> ProjectView:
    return ProjectView(id=project.id, name=project.name, end_date=project.end_date,
                       jurisdiction=project.jurisdiction)


@router.post("/projects", response_model=ProjectView)
def create_project(input: ProjectInput, db=Depends(get_session), user=Depends(require_user)):
    """Create a project"""
    project = Project(
        name=input.name,
        end_date=input.end_date,
        jurisdiction=input.jurisdiction.upper() if input.jurisdiction else None,
    )

    def work():
        db.add(project)
        db.flush()
        record_audit(db, "project", project.id, "create", user_id=user.id)

    try:
        run_in_transaction(db, work)
    except EngineError as e:
        raise_http_error(e)
    logger.info("Project %s created", project.id)
    return _project_view(project)


@router.get("/projects/{project_id}", response_model=ProjectView)
def read_project(project_id: int, db=Depends(get_session)):
    try:
        return _project_view(get_project(db, project_id))
    except EngineError as e:
        raise_http_error(e)


@router.put("/projects/{project_id}/requirements")
def put_requirements(project_id: int, input: RequirementSetInput,
                     db=Depends(get_session), user=Depends(require_user)):
    """Replace the project's insurance requirements"""
    try:
        requirements = replace_requirements(db, project_id, input.requirements, user_id=user.id)
    except EngineError as e:
        raise_http_error(e)
    return {"project_id": project_id, "requirements": [r.model_dump() for r in requirements]}


@router.get("/projects/{project_id}/requirements")
def read_requirements(project_id: int, db=Depends(get_session)):
    try:
        requirements = get_requirements(db, project_id)
    except EngineError as e:
        raise_http_error(e)
    return {"project_id": project_id, "requirements": [r.model_dump() for r in requirements]}


@router.post("/subcontractors", response_model=SubcontractorView)
def create_subcontractor(input: SubcontractorInput, db=Depends(get_session),
                         user=Depends(require_user)):
    """Register a subcontractor"""
    subcontractor = Subcontractor(
        name=input.name,
        abn="".join(input.abn.split()) if input.abn else None,
        contact_email=input.contact_email,
        broker_email=input.broker_email,
    )

    def work():
        db.add(subcontractor)
        db.flush()
        record_audit(db, "subcontractor", subcontractor.id, "create", user_id=user.id)

    try:
        run_in_transaction(db, work)
    except EngineError as e:
        raise_http_error(e)
    return SubcontractorView(id=subcontractor.id, name=subcontractor.name, abn=subcontractor.abn)


@router.post("/projects/{project_id}/assignments", response_model=AssignmentView)
def assign_subcontractor(project_id: int, input: AssignmentInput, db=Depends(get_session),
                         user=Depends(require_user)):
    """Add a subcontractor to a project. Compliance starts as pending."""
    try:
        get_project(db, project_id)
        if db.get(Subcontractor, input.subcontractor_id) is None:
            raise NotFoundError(f"Subcontractor {input.subcontractor_id} not found")

        assignment = ProjectSubcontractor(project_id=project_id,
                                          subcontractor_id=input.subcontractor_id,
                                          status="pending")

        def work():
            db.add(assignment)
            db.flush()
            record_audit(db, "assignment", assignment.id, "create", user_id=user.id)

        try:
            run_in_transaction(db, work)
        except IntegrityError as e:
            raise ConflictError("Subcontractor is already assigned to this project") from e
    except EngineError as e:
        raise_http_error(e)
    return _assignment_view(assignment)


@router.get("/assignments/{assignment_id}", response_model=AssignmentView)
def read_assignment(assignment_id: int, db=Depends(get_session)):
    """Current compliance status and version of an assignment"""
    try:
        return _assignment_view(get_assignment(db, assignment_id))
    except EngineError as e:
        raise_http_error(e)
