"""Document authenticity scoring for certificates of currency.

Each signal inspects one aspect of the extracted data or file metadata and
contributes a score capped at its own ceiling. The overall risk score is the
maximum contribution, not the sum. Signals that fire emit a ``fail`` check so
the verdict can show why a document was blocked.

The scorer knows nothing about project requirements.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from data.coverage_types import COVERAGE_TYPES, PLAUSIBLE_LIABILITY_MINIMUM
from data.insurer_templates import INSURER_TEMPLATES, LEGITIMATE_SOFTWARE, SUSPICIOUS_SOFTWARE
from schemas.verification import CheckResult, DocumentMetadata, ExtractedPolicyData, FraudSignal

# Signal ceilings
ABN_CHECKSUM_CEILING = 80
DATE_LOGIC_CEILING = 90
EDITING_SOFTWARE_CEILING = 70
DUPLICATE_POLICY_CEILING = 95
TEMPLATE_ANOMALY_CEILING = 65
COVERAGE_PLAUSIBILITY_CEILING = 70

ABN_WEIGHTS = [10, 1, 3, 5, 7, 9, 11, 13, 15, 17, 19]

RECOMMENDATIONS = {
    "critical": "BLOCK: Document flagged for possible fraud. Requires manual investigation "
                "before acceptance. Contact insurer directly to verify authenticity.",
    "high": "REVIEW: Multiple warning signs detected. Recommend manual verification with "
            "issuing broker or insurer.",
    "medium": "CAUTION: Some irregularities detected. Standard verification process recommended.",
    "low": "ACCEPT: No significant fraud indicators detected. Document appears authentic.",
}


@dataclass(frozen=True)
class FraudHit:
    check: CheckResult
    contribution: int


def _hit(check_id: str, description: str, detail: str, score: float, ceiling: int) -> FraudHit:
    return FraudHit(
        check=CheckResult(check_id=check_id, description=description, status="fail", detail=detail),
        contribution=int(min(max(score, 0), ceiling)),
    )


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def validate_abn_checksum(abn: str) -> tuple[bool, Optional[str]]:
    """Validate an ABN with the ATO weighted modulus-89 algorithm"""
    clean = re.sub(r"\s", "", abn or "")
    if not re.fullmatch(r"\d{11}", clean):
        return False, "ABN must be exactly 11 digits"

    digits = [int(ch) for ch in clean]
    digits[0] -= 1
    total = sum(d * w for d, w in zip(digits, ABN_WEIGHTS))
    if total % 89 != 0:
        return False, "ABN checksum validation failed - invalid ABN"
    return True, None


# ============== SIGNALS ==============

def identifier_checksum_signal(policy: ExtractedPolicyData) -> list[FraudHit]:
    if not policy.insured_identifier:
        return []
    valid, error = validate_abn_checksum(policy.insured_identifier)
    if valid:
        return []
    return [_hit("abn_checksum", "ABN checksum validation",
                 f"{error} (ABN: {policy.insured_identifier})", 80, ABN_CHECKSUM_CEILING)]


def date_logic_signal(policy: ExtractedPolicyData) -> list[FraudHit]:
    start, end = policy.period_start, policy.period_end
    if start is None or end is None:
        return []
    if end <= start:
        return [_hit("date_logic", "Policy date logic",
                     f"Policy end date {end.isoformat()} is on or before start date {start.isoformat()}",
                     90, DATE_LOGIC_CEILING)]
    term_days = (end - start).days
    if term_days > 400 or term_days < 30:
        return [_hit("date_logic", "Policy date logic",
                     f"Unusual policy length: {term_days} days", 25, DATE_LOGIC_CEILING)]
    return []


def editing_software_signal(metadata: DocumentMetadata) -> list[FraudHit]:
    hits = []

    created, modified = _naive_utc(metadata.creation_date), _naive_utc(metadata.modification_date)
    if created and modified:
        days = (modified - created).total_seconds() / 86400
        if days > 1:
            hits.append(_hit("metadata_modification", "Document modification detection",
                             f"Document was modified {round(days)} days after creation",
                             min(days * 5, 60), EDITING_SOFTWARE_CEILING))

    software = metadata.producer or metadata.creator or ""
    lowered = software.lower()
    if any(s.lower() in lowered for s in SUSPICIOUS_SOFTWARE):
        hits.append(_hit("metadata_software", "Creation software analysis",
                         f"Document produced with editing software: {software}",
                         70, EDITING_SOFTWARE_CEILING))
    elif software and not any(s.lower() in lowered for s in LEGITIMATE_SOFTWARE):
        hits.append(_hit("metadata_software", "Creation software analysis",
                         f"Document produced with unrecognised software: {software}",
                         30, EDITING_SOFTWARE_CEILING))
    return hits


def duplicate_policy_signal(policy: ExtractedPolicyData, metadata: DocumentMetadata) -> list[FraudHit]:
    previous = metadata.previous_submissions
    if not previous:
        return []

    hits = []
    if metadata.document_hash:
        for prior in previous:
            if prior.document_hash == metadata.document_hash:
                uploaded = prior.uploaded_at.isoformat() if prior.uploaded_at else "unknown date"
                hits.append(_hit("duplicate_detection", "Duplicate document detection",
                                 f"This exact document was previously submitted on {uploaded}",
                                 10, DUPLICATE_POLICY_CEILING))
                break

    # An identical copy of a doctored certificate is still doctored
    if policy.policy_number and policy.period_end is not None:
        for prior in previous:
            if (prior.policy_number == policy.policy_number
                    and prior.period_end is not None
                    and prior.period_end != policy.period_end):
                hits.append(_hit("date_manipulation", "Date manipulation detection",
                                 f"Policy {policy.policy_number} previously submitted with expiry "
                                 f"{prior.period_end.isoformat()}, now {policy.period_end.isoformat()}",
                                 95, DUPLICATE_POLICY_CEILING))
                break
    return hits


def _normalize_name(name: str) -> str:
    return " ".join(re.sub(r"[^a-z0-9 ]", " ", name.lower()).split())


def match_insurer_template(insurer_name: str) -> Optional[dict]:
    """Match on the insurer's whole-word key or its exact registered name"""
    lowered = _normalize_name(insurer_name)
    for key, template in INSURER_TEMPLATES.items():
        if re.search(rf"\b{key}\b", lowered) or lowered == _normalize_name(template["name"]):
            return template
    return None


def template_anomaly_signal(policy: ExtractedPolicyData) -> list[FraudHit]:
    if not policy.insurer_name or not policy.insurer_name.strip():
        return []
    template = match_insurer_template(policy.insurer_name.strip())
    if template is None:
        return [_hit("template_match", "Insurer template verification",
                     f"Insurer not in known template library: {policy.insurer_name}",
                     20, TEMPLATE_ANOMALY_CEILING)]

    policy_number = re.sub(r"\s", "", policy.policy_number or "").upper()
    if not template["policy_number_pattern"].match(policy_number):
        return [_hit("policy_number_format", "Policy number format validation",
                     f"Policy number {policy.policy_number or 'missing'} does not match "
                     f"{template['name']} format", 65, TEMPLATE_ANOMALY_CEILING)]
    return []


def coverage_plausibility_signal(policy: ExtractedPolicyData) -> list[FraudHit]:
    hits = []
    for line in policy.coverages:
        if line.limit is None:
            continue
        if line.limit <= 0:
            hits.append(_hit(f"limit_plausibility_{line.type}", f"{line.type} limit validation",
                             f"Invalid or zero coverage limit for {line.type}",
                             70, COVERAGE_PLAUSIBILITY_CEILING))
        elif (line.limit < PLAUSIBLE_LIABILITY_MINIMUM
              and COVERAGE_TYPES.get(line.type, {}).get("liability")):
            hits.append(_hit(f"limit_plausibility_{line.type}", f"{line.type} limit validation",
                             f"Unusually low coverage limit for {line.type}: ${line.limit:,.0f}",
                             40, COVERAGE_PLAUSIBILITY_CEILING))
    return hits


def classify_risk(score: int) -> str:
    if score >= 80:
        return "critical"
    if score >= 60:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


def score_fraud_risk(policy: ExtractedPolicyData,
                     metadata: Optional[DocumentMetadata] = None) -> FraudSignal:
    metadata = metadata or DocumentMetadata()

    hits = []
    hits += identifier_checksum_signal(policy)
    hits += date_logic_signal(policy)
    hits += editing_software_signal(metadata)
    hits += duplicate_policy_signal(policy, metadata)
    hits += template_anomaly_signal(policy)
    hits += coverage_plausibility_signal(policy)

    risk_score = max((h.contribution for h in hits), default=0)
    risk_level = classify_risk(risk_score)
    return FraudSignal(
        risk_score=risk_score,
        risk_level=risk_level,
        is_blocked=risk_level == "critical",
        evidence_checks=tuple(h.check for h in hits),
        recommendation=RECOMMENDATIONS[risk_level],
    )
