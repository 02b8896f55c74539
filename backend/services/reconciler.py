"""Merge requirement evaluation and fraud scoring into one verdict.

Precedence is an ordered list of rules; the first rule whose condition holds
decides the status. To add an override, insert a ``ReconciliationRule`` at the
position where it must win, do not fold it into another rule's condition.
"""
from dataclasses import dataclass
from typing import Callable

from config import REVIEW_CONFIDENCE_THRESHOLD
from schemas.verification import (
    CheckResult, Deficiency, EvaluationResult, FraudSignal, VerificationVerdict,
)


@dataclass(frozen=True)
class ReconciliationContext:
    evaluation: EvaluationResult
    fraud: FraudSignal
    confidence_score: float
    review_threshold: float

    @property
    def low_confidence(self) -> bool:
        return self.confidence_score < self.review_threshold


@dataclass(frozen=True)
class Outcome:
    status: str
    extra_checks: tuple = ()
    extra_deficiencies: tuple = ()


@dataclass(frozen=True)
class ReconciliationRule:
    name: str
    applies: Callable[[ReconciliationContext], bool]
    decide: Callable[[ReconciliationContext], Outcome]


def _fraud_block(ctx: ReconciliationContext) -> Outcome:
    screening = CheckResult(
        check_id="fraud_screening",
        description="Document authenticity screening",
        status="fail",
        detail=f"Fraud risk score {ctx.fraud.risk_score} ({ctx.fraud.risk_level}). "
               f"{ctx.fraud.recommendation}",
    )
    deficiency = Deficiency(
        kind="fraud_detected",
        severity="critical",
        description="Certificate flagged as possibly fraudulent and blocked pending investigation",
        required_value="Authentic certificate of currency",
        actual_value=f"Risk score {ctx.fraud.risk_score}",
        check_id="fraud_screening",
    )
    return Outcome("fail", (*ctx.fraud.evidence_checks, screening), (deficiency,))


def _fraud_warning(ctx: ReconciliationContext) -> Outcome:
    warning = CheckResult(
        check_id="fraud_risk_warning",
        description="Document authenticity screening",
        status="warning",
        detail=f"Elevated fraud risk score {ctx.fraud.risk_score}. {ctx.fraud.recommendation}",
    )
    return Outcome("review", (warning,))


def _needs_review(ctx: ReconciliationContext) -> Outcome:
    if not ctx.low_confidence:
        return Outcome("review")
    warning = CheckResult(
        check_id="extraction_confidence",
        description="Extraction confidence",
        status="warning",
        detail=f"Extraction confidence {ctx.confidence_score:.0%} is below the "
               f"{ctx.review_threshold:.0%} review threshold",
    )
    return Outcome("review", (warning,))


RECONCILIATION_RULES = [
    ReconciliationRule(
        name="fraud_blocked",
        applies=lambda ctx: ctx.fraud.is_blocked,
        decide=_fraud_block,
    ),
    ReconciliationRule(
        name="requirements_failed",
        applies=lambda ctx: ctx.evaluation.status == "fail",
        decide=lambda ctx: Outcome("fail"),
    ),
    ReconciliationRule(
        name="fraud_risk_high",
        applies=lambda ctx: ctx.fraud.risk_level == "high" and ctx.evaluation.status == "pass",
        decide=_fraud_warning,
    ),
    ReconciliationRule(
        name="needs_review",
        applies=lambda ctx: ctx.evaluation.status == "review" or ctx.low_confidence,
        decide=_needs_review,
    ),
    ReconciliationRule(
        name="all_clear",
        applies=lambda ctx: True,
        decide=lambda ctx: Outcome("pass"),
    ),
]


def reconcile(evaluation: EvaluationResult, fraud: FraudSignal, confidence_score: float,
              review_threshold: float = REVIEW_CONFIDENCE_THRESHOLD,
              rules=None) -> VerificationVerdict:
    """Produce the verdict from the first matching rule.

    ``confidence_score`` is carried through unchanged; low confidence only
    forces a review, it is never blended with the fraud score.
    """
    ctx = ReconciliationContext(evaluation, fraud, confidence_score, review_threshold)
    for rule in rules or RECONCILIATION_RULES:
        if rule.applies(ctx):
            outcome = rule.decide(ctx)
            return VerificationVerdict(
                status=outcome.status,
                checks=evaluation.checks + tuple(outcome.extra_checks),
                deficiencies=evaluation.deficiencies + tuple(outcome.extra_deficiencies),
                confidence_score=confidence_score,
                fraud_signal=fraud,
                decided_by=rule.name,
            )
    raise RuntimeError("No reconciliation rule matched")  # all_clear always matches
