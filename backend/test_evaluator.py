from datetime import date, timedelta

from conftest import NOW, VALID_ABN, make_policy, standard_requirements
from schemas.verification import CoverageLine, CoverageRequirement, ProjectFacts
from services.evaluator import evaluate_requirements
from services.insurers import InsurerRegistry

AS_OF = NOW.date()
FACTS = ProjectFacts(end_date=date(2027, 3, 31), jurisdiction="NSW", expected_identifier=VALID_ABN)


def evaluate(policy, requirements=None, facts=FACTS, **kwargs):
    if requirements is None:
        requirements = standard_requirements()
    return evaluate_requirements(policy, requirements, facts, as_of=AS_OF, **kwargs)


def check(result, check_id):
    return next(c for c in result.checks if c.check_id == check_id)


def test_compliant_certificate_passes():
    result = evaluate(make_policy())
    assert result.status == "pass"
    assert result.deficiencies == ()
    assert [c.check_id for c in result.checks][:4] == [
        "policy_validity", "project_coverage", "identity_match", "insurer_eligibility",
    ]


def test_insufficient_limit_is_one_major_deficiency():
    policy = make_policy(coverages=[
        CoverageLine(type="public_liability", limit=5_000_000),
    ])
    requirements = [CoverageRequirement(coverage_type="public_liability", minimum_limit=10_000_000)]

    result = evaluate(policy, requirements)

    failing = [c for c in result.checks if c.status == "fail"]
    assert [c.check_id for c in failing] == ["coverage_public_liability"]
    assert len(result.deficiencies) == 1
    deficiency = result.deficiencies[0]
    assert deficiency.kind == "insufficient_limit"
    assert deficiency.severity == "major"
    assert deficiency.required_value == "$10,000,000"
    assert deficiency.actual_value == "$5,000,000"
    assert result.status == "fail"


def test_expiring_soon_is_review_without_deficiencies():
    policy = make_policy(period_end=AS_OF + timedelta(days=10))
    facts = ProjectFacts(jurisdiction="NSW", expected_identifier=VALID_ABN)

    result = evaluate(policy, facts=facts)

    warnings = [c for c in result.checks if c.status == "warning"]
    assert [c.check_id for c in warnings] == ["policy_validity"]
    assert result.deficiencies == ()
    assert result.status == "review"


def test_expired_policy_is_critical():
    result = evaluate(make_policy(period_end=AS_OF - timedelta(days=1)))
    assert check(result, "policy_validity").status == "fail"
    kinds = {d.kind: d.severity for d in result.deficiencies}
    assert kinds["expired_policy"] == "critical"
    assert result.status == "fail"


def test_missing_period_end_fails_without_raising():
    result = evaluate(make_policy(period_end=None))
    assert check(result, "policy_validity").status == "fail"
    assert result.deficiencies[0].kind == "missing_policy_period"
    assert all(c.check_id != "project_coverage" for c in result.checks)


def test_policy_ending_before_project_fails():
    result = evaluate(make_policy(period_end=date(2027, 1, 31)))
    assert check(result, "project_coverage").status == "fail"
    assert any(d.kind == "policy_expires_before_project" for d in result.deficiencies)


def test_missing_coverage_line_is_a_deficiency_not_an_error():
    policy = make_policy(coverages=[])
    result = evaluate(policy)
    missing = [d for d in result.deficiencies if d.kind == "missing_coverage"]
    assert [d.check_id for d in missing] == ["coverage_public_liability", "coverage_workers_comp"]
    assert all(d.severity == "critical" for d in missing)


def test_abn_mismatch_is_critical():
    result = evaluate(make_policy(insured_identifier="33 102 417 032"))
    assert check(result, "identity_match").status == "fail"
    assert any(d.kind == "identity_mismatch" and d.severity == "critical"
               for d in result.deficiencies)


def test_unlicensed_insurer_fails():
    registry = InsurerRegistry(["Allianz Australia Insurance Limited"])
    result = evaluate(make_policy(), insurer_registry=registry)
    assert check(result, "insurer_eligibility").status == "fail"


def test_insurer_lookup_normalises_case_and_spacing():
    result = evaluate(make_policy(insurer_name="  qbe insurance   (australia) limited "))
    assert check(result, "insurer_eligibility").status == "pass"


def test_excess_above_maximum_is_minor():
    policy = make_policy(coverages=[
        CoverageLine(type="public_liability", limit=20_000_000, excess=25_000,
                     principal_indemnity=True, cross_liability=True, waiver_of_subrogation=True),
        CoverageLine(type="workers_comp", jurisdiction="NSW"),
    ])
    result = evaluate(policy)
    assert check(result, "excess_public_liability").status == "fail"
    assert [d.severity for d in result.deficiencies] == ["minor"]
    assert result.status == "fail"


def test_missing_endorsements_each_fail():
    policy = make_policy(coverages=[
        CoverageLine(type="public_liability", limit=20_000_000, excess=5_000),
        CoverageLine(type="workers_comp", jurisdiction="NSW"),
    ])
    result = evaluate(policy)
    endorsement_ids = [d.check_id for d in result.deficiencies if d.kind == "missing_endorsement"]
    assert endorsement_ids == [
        "principal_indemnity_public_liability",
        "cross_liability_public_liability",
        "waiver_of_subrogation_public_liability",
    ]


def test_workers_comp_from_another_state_fails():
    policy = make_policy(coverages=[
        CoverageLine(type="public_liability", limit=20_000_000, excess=5_000,
                     principal_indemnity=True, cross_liability=True, waiver_of_subrogation=True),
        CoverageLine(type="workers_comp", jurisdiction="VIC"),
    ])
    result = evaluate(policy)
    assert check(result, "jurisdiction_workers_comp").status == "fail"
    assert any(d.kind == "jurisdiction_mismatch" and d.severity == "critical"
               for d in result.deficiencies)


def test_no_jurisdiction_information_emits_no_check():
    policy = make_policy(coverages=[
        CoverageLine(type="public_liability", limit=20_000_000, excess=5_000,
                     principal_indemnity=True, cross_liability=True, waiver_of_subrogation=True),
        CoverageLine(type="workers_comp"),
    ])
    result = evaluate(policy)
    assert all(c.check_id != "jurisdiction_workers_comp" for c in result.checks)
    assert result.status == "pass"


def test_empty_requirement_set_is_valid():
    result = evaluate(make_policy(), requirements=[])
    assert result.status == "pass"
    assert len(result.checks) == 4


def test_every_deficiency_traces_to_a_failing_check():
    policy = make_policy(
        period_end=AS_OF - timedelta(days=3),
        insured_identifier="33102417032",
        coverages=[CoverageLine(type="public_liability", limit=1_000_000, excess=50_000)],
    )
    result = evaluate(policy)
    failing = {c.check_id for c in result.checks if c.status == "fail"}
    assert result.deficiencies
    for deficiency in result.deficiencies:
        assert deficiency.check_id in failing


def test_evaluation_is_deterministic():
    policy = make_policy(coverages=[CoverageLine(type="public_liability", limit=1_000)])
    assert evaluate(policy) == evaluate(policy)
