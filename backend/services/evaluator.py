"""Requirement evaluation for extracted certificate data.

``evaluate_requirements`` checks one extracted policy against a project's
coverage requirements and contextual facts and returns the ordered checks and
the deficiencies derived from them. It performs no I/O and reads no clock:
callers pass ``as_of``.

A malformed extraction is an expected input, not a programming error, so
missing fields turn into failing checks instead of exceptions.
"""
from datetime import date, datetime
from typing import Iterable, Optional

from config import EXPIRY_WARNING_DAYS
from data.coverage_types import JURISDICTION_BOUND_COVERAGES, format_coverage_type
from schemas.verification import (
    CheckResult, CoverageLine, CoverageRequirement, Deficiency, EvaluationResult,
    ExtractedPolicyData, ProjectFacts,
)
from services.insurers import InsurerRegistry, default_registry


def format_money(value) -> str:
    if value is None:
        return "Not stated"
    return f"${value:,.0f}"


def normalize_identifier(value: Optional[str]) -> str:
    return "".join((value or "").split())


class Findings:
    """Ordered checks plus the deficiencies raised by failing ones."""

    def __init__(self):
        self.checks: list[CheckResult] = []
        self.deficiencies: list[Deficiency] = []

    def passed(self, check_id: str, description: str, detail: str):
        self.checks.append(CheckResult(check_id=check_id, description=description,
                                       status="pass", detail=detail))

    def warning(self, check_id: str, description: str, detail: str):
        self.checks.append(CheckResult(check_id=check_id, description=description,
                                       status="warning", detail=detail))

    def failed(self, check_id: str, description: str, detail: str, *, kind: str,
               severity: str, summary: str, required_value: Optional[str],
               actual_value: Optional[str]):
        self.checks.append(CheckResult(check_id=check_id, description=description,
                                       status="fail", detail=detail))
        self.deficiencies.append(Deficiency(
            kind=kind,
            severity=severity,
            description=summary,
            required_value=required_value,
            actual_value=actual_value,
            check_id=check_id,
        ))


def derive_status(checks: Iterable[CheckResult], deficiencies: Iterable[Deficiency]) -> str:
    checks = list(checks)
    has_failures = any(c.status == "fail" for c in checks)
    has_critical = any(d.severity == "critical" for d in deficiencies)
    if has_failures or has_critical:
        return "fail"
    if any(c.status == "warning" for c in checks):
        return "review"
    return "pass"


# ============== RULES ==============

def check_policy_validity(findings: Findings, policy: ExtractedPolicyData, as_of: date,
                          warning_days: int):
    description = "Policy validity period"
    end = policy.period_end
    if end is None:
        findings.failed(
            "policy_validity", description, "Policy end date could not be read",
            kind="missing_policy_period", severity="critical",
            summary="Certificate of Currency does not show a readable period of insurance",
            required_value="Valid policy period", actual_value="Not found",
        )
        return

    days_remaining = (end - as_of).days
    if end < as_of:
        findings.failed(
            "policy_validity", description, "Policy has expired",
            kind="expired_policy", severity="critical",
            summary="Certificate of Currency has expired",
            required_value="Valid policy", actual_value=f"Expired on {end.isoformat()}",
        )
    elif days_remaining <= warning_days:
        findings.warning("policy_validity", description,
                         f"Policy expires in {days_remaining} days")
    else:
        findings.passed("policy_validity", description,
                        f"Policy valid until {end.isoformat()}")


def check_project_period(findings: Findings, policy: ExtractedPolicyData,
                         project_end: Optional[date]):
    if project_end is None or policy.period_end is None:
        return
    description = "Project period coverage"
    if policy.period_end < project_end:
        findings.failed(
            "project_coverage", description,
            f"Policy expires before project end date ({project_end.isoformat()})",
            kind="policy_expires_before_project", severity="critical",
            summary="Policy expires before project completion date",
            required_value=f"Valid until {project_end.isoformat()}",
            actual_value=f"Expires {policy.period_end.isoformat()}",
        )
    else:
        findings.passed("project_coverage", description,
                        f"Policy covers project period (ends {project_end.isoformat()})")


def check_identity(findings: Findings, policy: ExtractedPolicyData,
                   expected_identifier: Optional[str]):
    description = "Insured identity (ABN) match"
    if not expected_identifier:
        findings.passed("identity_match", description, "No expected identifier on file")
        return

    expected = normalize_identifier(expected_identifier)
    actual = normalize_identifier(policy.insured_identifier)
    if actual and actual == expected:
        findings.passed("identity_match", description, f"ABN {actual} matches subcontractor")
        return

    findings.failed(
        "identity_match", description,
        f"Certificate ABN {actual or 'not found'} does not match subcontractor ABN {expected}",
        kind="identity_mismatch", severity="critical",
        summary="Insured party on the certificate is not the subcontractor",
        required_value=expected, actual_value=actual or "Not found",
    )


def check_insurer(findings: Findings, policy: ExtractedPolicyData, registry: InsurerRegistry):
    description = "Insurer eligibility"
    if registry.is_licensed(policy.insurer_name):
        findings.passed("insurer_eligibility", description,
                        f"{policy.insurer_name} is an authorised insurer")
        return
    findings.failed(
        "insurer_eligibility", description,
        f"{policy.insurer_name or 'Insurer'} is not on the authorised insurer list",
        kind="unlicensed_insurer", severity="critical",
        summary="Policy is not issued by an authorised insurer",
        required_value="APRA-authorised insurer",
        actual_value=policy.insurer_name or "Not found",
    )


def find_coverage(policy: ExtractedPolicyData, coverage_type: str) -> Optional[CoverageLine]:
    for line in policy.coverages:
        if line.type == coverage_type:
            return line
    return None


ENDORSEMENTS = [
    ("principal_indemnity", "principal_indemnity_required", "principal indemnity"),
    ("cross_liability", "cross_liability_required", "cross liability"),
    ("waiver_of_subrogation", "waiver_required", "waiver of subrogation"),
]


def check_requirement(findings: Findings, policy: ExtractedPolicyData,
                      requirement: CoverageRequirement, project_jurisdiction: Optional[str]):
    coverage_type = requirement.coverage_type
    label = format_coverage_type(coverage_type)
    coverage = find_coverage(policy, coverage_type)

    if coverage is None:
        findings.failed(
            f"coverage_{coverage_type}", f"{label} coverage", "Coverage not found in certificate",
            kind="missing_coverage", severity="critical",
            summary=f"{label} coverage is required but not present",
            required_value=(format_money(requirement.minimum_limit)
                            if requirement.minimum_limit else "Required"),
            actual_value="Not found",
        )
        return

    # Limit
    minimum = requirement.minimum_limit
    if minimum and (coverage.limit is None or coverage.limit < minimum):
        findings.failed(
            f"coverage_{coverage_type}", f"{label} limit",
            f"Limit {format_money(coverage.limit)} is below required {format_money(minimum)}",
            kind="insufficient_limit", severity="major",
            summary=f"{label} limit is below minimum requirement",
            required_value=format_money(minimum), actual_value=format_money(coverage.limit),
        )
    elif minimum:
        findings.passed(f"coverage_{coverage_type}", f"{label} limit",
                        f"Limit {format_money(coverage.limit)} meets minimum requirement")
    else:
        findings.passed(f"coverage_{coverage_type}", f"{label} limit",
                        f"{label} coverage present with no minimum limit")

    # Excess
    maximum_excess = requirement.maximum_excess
    if maximum_excess is not None:
        if coverage.excess is not None and coverage.excess > maximum_excess:
            findings.failed(
                f"excess_{coverage_type}", f"{label} excess",
                f"Excess {format_money(coverage.excess)} exceeds maximum {format_money(maximum_excess)}",
                kind="excess_too_high", severity="minor",
                summary=f"{label} excess exceeds maximum allowed",
                required_value=f"Max {format_money(maximum_excess)}",
                actual_value=format_money(coverage.excess),
            )
        else:
            findings.passed(f"excess_{coverage_type}", f"{label} excess",
                            f"Excess {format_money(coverage.excess)} within maximum")

    # Endorsements
    for flag, required_attr, endorsement in ENDORSEMENTS:
        if not getattr(requirement, required_attr):
            continue
        check_id = f"{flag}_{coverage_type}"
        if getattr(coverage, flag):
            findings.passed(check_id, f"{label} {endorsement}",
                            f"{endorsement.capitalize()} extension present")
        else:
            findings.failed(
                check_id, f"{label} {endorsement}",
                f"{endorsement.capitalize()} extension required but not present",
                kind="missing_endorsement", severity="major",
                summary=f"{endorsement.capitalize()} extension required for {label}",
                required_value="Yes", actual_value="No",
            )

    # Jurisdiction
    must_match = requirement.jurisdiction_must_match
    if must_match is None:
        must_match = coverage_type in JURISDICTION_BOUND_COVERAGES
    if not must_match or not project_jurisdiction or not coverage.jurisdiction:
        return
    scheme = coverage.jurisdiction.strip().upper()
    project_state = project_jurisdiction.strip().upper()
    if scheme == project_state:
        findings.passed(f"jurisdiction_{coverage_type}", f"{label} state coverage",
                        f"{label} scheme ({scheme}) matches project state")
    else:
        findings.failed(
            f"jurisdiction_{coverage_type}", f"{label} state coverage",
            f"{label} scheme is for {scheme} but project is in {project_state}",
            kind="jurisdiction_mismatch", severity="critical",
            summary=f"{label} scheme does not cover the project state",
            required_value=f"{project_state} scheme", actual_value=f"{scheme} scheme",
        )


def evaluate_requirements(policy: ExtractedPolicyData,
                          requirements: Iterable[CoverageRequirement],
                          facts: Optional[ProjectFacts] = None,
                          insurer_registry: Optional[InsurerRegistry] = None,
                          as_of=None,
                          expiry_warning_days: int = EXPIRY_WARNING_DAYS) -> EvaluationResult:
    """Evaluate a policy against project requirements.

    Requirements are checked in the order given; at most one requirement per
    coverage type is assumed. An empty requirement set is valid and leaves only
    the policy-level checks.
    """
    facts = facts or ProjectFacts()
    registry = insurer_registry or default_registry
    if as_of is None:
        as_of = date.today()
    elif isinstance(as_of, datetime):
        as_of = as_of.date()

    findings = Findings()
    check_policy_validity(findings, policy, as_of, expiry_warning_days)
    check_project_period(findings, policy, facts.end_date)
    check_identity(findings, policy, facts.expected_identifier)
    check_insurer(findings, policy, registry)
    for requirement in requirements:
        check_requirement(findings, policy, requirement, facts.jurisdiction)

    return EvaluationResult(
        status=derive_status(findings.checks, findings.deficiencies),
        checks=tuple(findings.checks),
        deficiencies=tuple(findings.deficiencies),
    )
