import logging

from data.coverage_types import COVERAGE_TYPES
from errors import NotFoundError, RequirementValidationError
from models import InsuranceRequirement, Project, ProjectSubcontractor
from schemas.verification import CoverageRequirement, ProjectFacts
from services.db_ops import record_audit, run_in_transaction

logger = logging.getLogger(__name__)


def validate_requirements(requirements: list[CoverageRequirement]):
    """Reject requirement sets the evaluator cannot interpret unambiguously"""
    seen = set()
    for req in requirements:
        if req.coverage_type not in COVERAGE_TYPES:
            raise RequirementValidationError(f"Unknown coverage type: {req.coverage_type}")
        if req.coverage_type in seen:
            raise RequirementValidationError(f"Duplicate requirement for {req.coverage_type}")
        seen.add(req.coverage_type)
        if req.minimum_limit is not None and req.minimum_limit < 0:
            raise RequirementValidationError(f"Negative minimum limit for {req.coverage_type}")
        if req.maximum_excess is not None and req.maximum_excess < 0:
            raise RequirementValidationError(f"Negative maximum excess for {req.coverage_type}")


def to_requirement(row: InsuranceRequirement) -> CoverageRequirement:
    return CoverageRequirement(
        coverage_type=row.coverage_type,
        minimum_limit=row.minimum_limit,
        maximum_excess=row.maximum_excess,
        principal_indemnity_required=bool(row.principal_indemnity_required),
        cross_liability_required=bool(row.cross_liability_required),
        waiver_required=bool(row.waiver_required),
        jurisdiction_must_match=row.jurisdiction_must_match,
    )


def get_project(db, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if project is None:
        raise NotFoundError(f"Project {project_id} not found")
    return project


def get_requirements(db, project_id: int) -> list[CoverageRequirement]:
    project = get_project(db, project_id)
    return [to_requirement(row) for row in project.requirements]


def replace_requirements(db, project_id: int, requirements: list[CoverageRequirement],
                         user_id: int = None) -> list[CoverageRequirement]:
    """Replace the project's whole requirement set, keeping the given order"""
    validate_requirements(requirements)
    project = get_project(db, project_id)

    def work():
        project.requirements.clear()
        db.flush()
        for position, req in enumerate(requirements):
            project.requirements.append(InsuranceRequirement(position=position, **req.model_dump()))
        record_audit(db, "project", project.id, "requirements_replaced", user_id=user_id,
                     details={"coverage_types": [r.coverage_type for r in requirements]})

    run_in_transaction(db, work)
    logger.info("Project %s requirements replaced (%d)", project.id, len(requirements))
    return [to_requirement(row) for row in project.requirements]


def project_facts(assignment: ProjectSubcontractor) -> ProjectFacts:
    return ProjectFacts(
        end_date=assignment.project.end_date,
        jurisdiction=assignment.project.jurisdiction,
        expected_identifier=assignment.subcontractor.abn,
    )
