import itertools

import pytest

from schemas.verification import CheckResult, Deficiency, EvaluationResult, FraudSignal
from services.reconciler import RECONCILIATION_RULES, reconcile

PASS_CHECK = CheckResult(check_id="policy_validity", description="Policy validity period",
                         status="pass", detail="Policy valid until 2027-06-30")
WARN_CHECK = CheckResult(check_id="policy_validity", description="Policy validity period",
                         status="warning", detail="Policy expires in 10 days")
FAIL_CHECK = CheckResult(check_id="coverage_public_liability", description="Public Liability limit",
                         status="fail", detail="Limit $5,000,000 is below required $10,000,000")
LIMIT_GAP = Deficiency(kind="insufficient_limit", severity="major",
                       description="Public Liability limit is below minimum requirement",
                       required_value="$10,000,000", actual_value="$5,000,000",
                       check_id="coverage_public_liability")

EVALUATIONS = {
    "pass": EvaluationResult(status="pass", checks=(PASS_CHECK,)),
    "review": EvaluationResult(status="review", checks=(WARN_CHECK,)),
    "fail": EvaluationResult(status="fail", checks=(FAIL_CHECK,), deficiencies=(LIMIT_GAP,)),
}


def fraud(score=0, level="low", blocked=False, evidence=()):
    return FraudSignal(risk_score=score, risk_level=level, is_blocked=blocked,
                       evidence_checks=evidence, recommendation=f"{level} risk")


BLOCKED = fraud(95, "critical", True, (
    CheckResult(check_id="date_manipulation", description="Date manipulation detection",
                status="fail", detail="Policy previously submitted with a different expiry"),
))
SIGNALS = {
    "low": fraud(),
    "medium": fraud(45, "medium"),
    "high": fraud(70, "high"),
    "critical": BLOCKED,
}


def test_rules_are_ordered_by_precedence():
    assert [r.name for r in RECONCILIATION_RULES] == [
        "fraud_blocked", "requirements_failed", "fraud_risk_high", "needs_review", "all_clear",
    ]


def test_all_clear_passes_and_carries_confidence():
    verdict = reconcile(EVALUATIONS["pass"], fraud(), 0.93)
    assert verdict.status == "pass"
    assert verdict.decided_by == "all_clear"
    assert verdict.confidence_score == 0.93
    assert verdict.checks == (PASS_CHECK,)


def test_blocked_fraud_overrides_a_passing_evaluation():
    verdict = reconcile(EVALUATIONS["pass"], BLOCKED, 0.95)
    assert verdict.status == "fail"
    assert verdict.decided_by == "fraud_blocked"
    assert [d.kind for d in verdict.deficiencies] == ["fraud_detected"]
    assert verdict.deficiencies[0].severity == "critical"
    check_ids = [c.check_id for c in verdict.checks]
    assert check_ids == ["policy_validity", "date_manipulation", "fraud_screening"]


def test_requirements_failure_wins_over_high_fraud():
    verdict = reconcile(EVALUATIONS["fail"], SIGNALS["high"], 0.95)
    assert verdict.status == "fail"
    assert verdict.decided_by == "requirements_failed"
    assert verdict.deficiencies == (LIMIT_GAP,)


def test_high_fraud_downgrades_pass_to_review_without_deficiency():
    verdict = reconcile(EVALUATIONS["pass"], SIGNALS["high"], 0.95)
    assert verdict.status == "review"
    assert verdict.decided_by == "fraud_risk_high"
    assert verdict.checks[-1].check_id == "fraud_risk_warning"
    assert verdict.checks[-1].status == "warning"
    assert verdict.deficiencies == ()


def test_low_confidence_forces_review():
    verdict = reconcile(EVALUATIONS["pass"], fraud(), 0.55)
    assert verdict.status == "review"
    assert verdict.decided_by == "needs_review"
    assert verdict.checks[-1].check_id == "extraction_confidence"
    assert verdict.confidence_score == 0.55


def test_low_confidence_and_high_fraud_is_decided_by_fraud_rule():
    verdict = reconcile(EVALUATIONS["pass"], SIGNALS["high"], 0.40)
    assert verdict.status == "review"
    assert verdict.decided_by == "fraud_risk_high"


def test_review_evaluation_stays_review():
    verdict = reconcile(EVALUATIONS["review"], SIGNALS["medium"], 0.90)
    assert verdict.status == "review"
    assert verdict.decided_by == "needs_review"


@pytest.mark.parametrize("evaluation", list(EVALUATIONS.values()), ids=list(EVALUATIONS))
def test_blocked_is_fail_for_any_evaluation(evaluation):
    verdict = reconcile(evaluation, BLOCKED, 1.0)
    assert verdict.status == "fail"
    assert any(d.kind == "fraud_detected" for d in verdict.deficiencies)


@pytest.mark.parametrize("evaluation_key, signal_key, confidence", list(itertools.product(
    EVALUATIONS.keys(), SIGNALS.keys(), [0.2, 0.7, 1.0])))
def test_verdict_properties_hold_for_all_combinations(evaluation_key, signal_key, confidence):
    evaluation, signal = EVALUATIONS[evaluation_key], SIGNALS[signal_key]
    verdict = reconcile(evaluation, signal, confidence)

    # Never pass while any check fails
    if any(c.status == "fail" for c in verdict.checks):
        assert verdict.status != "pass"

    # Every deficiency has its failing check
    failing = {c.check_id for c in verdict.checks if c.status == "fail"}
    assert all(d.check_id in failing for d in verdict.deficiencies)

    # Same inputs, same verdict
    assert reconcile(evaluation, signal, confidence) == verdict


def test_custom_rule_inserted_first_takes_precedence():
    from services.reconciler import Outcome, ReconciliationRule

    hold = ReconciliationRule(name="manual_hold", applies=lambda ctx: True,
                              decide=lambda ctx: Outcome("review"))
    verdict = reconcile(EVALUATIONS["pass"], fraud(), 0.95,
                        rules=[hold, *RECONCILIATION_RULES])
    assert verdict.decided_by == "manual_hold"
    assert verdict.status == "review"
