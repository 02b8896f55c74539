import re
from datetime import date
from typing import Optional

from schemas.verification import CoverageLine, ExtractedPolicyData

COVERAGE_LABELS = {
    "public_liability": r"public\s+liability",
    "products_liability": r"products?\s+liability",
    "workers_comp": r"workers'?\s*comp(?:ensation)?",
    "professional_indemnity": r"professional\s+indemnity",
    "motor_vehicle": r"motor\s+vehicle",
    "contract_works": r"contract\s+works",
}

LIABILITY_TYPES = ("public_liability", "products_liability")

STATE_CODES = ("NSW", "VIC", "QLD", "SA", "WA", "TAS", "ACT", "NT")

KEY_FIELDS = ("insured_name", "insured_identifier", "insurer_name", "policy_number",
              "period_end", "coverages")


def parse_limit_to_number(limit_str: str) -> Optional[float]:
    """Parse a limit string like '$1,000,000' or '$1M' to a number"""
    if not limit_str:
        return None
    # Remove $ and commas
    cleaned = limit_str.replace('$', '').replace(',', '').strip().upper()
    multiplier = 1
    # Handle M for million, K for thousand
    if cleaned.endswith('M'):
        multiplier, cleaned = 1_000_000, cleaned[:-1]
    elif cleaned.endswith('K'):
        multiplier, cleaned = 1_000, cleaned[:-1]
    try:
        return float(cleaned) * multiplier
    except ValueError:
        return None


def parse_date(value: str) -> Optional[date]:
    """Accept 2026-07-01 or the Australian 01/07/2026"""
    match = re.fullmatch(r'(\d{4})-(\d{2})-(\d{2})', value)
    if match:
        year, month, day = match.groups()
    else:
        match = re.fullmatch(r'(\d{1,2})/(\d{1,2})/(\d{4})', value)
        if not match:
            return None
        day, month, year = match.groups()
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def _field(text: str, pattern: str) -> Optional[str]:
    match = re.search(pattern, text, re.IGNORECASE | re.MULTILINE)
    return match.group(1).strip() if match else None


def _flag(text: str, label: str) -> bool:
    value = _field(text, rf'^\s*{label}\s*:\s*(\w+)')
    return bool(value) and value.lower() in ("yes", "y", "true", "included")


def _coverages(text: str) -> list[CoverageLine]:
    global_excess = parse_limit_to_number(_field(text, r'^\s*excess\s*:\s*(\$?[\d,.]+[MK]?)') or "")
    principal = _flag(text, r'principal\s+indemnity')
    cross = _flag(text, r'cross\s+liability')
    waiver = _flag(text, r'waiver\s+of\s+subrogation')

    lines = []
    for coverage_type, label in COVERAGE_LABELS.items():
        rest = _field(text, rf'^\s*{label}[^:\n]*:\s*(.*)$')
        if rest is None:
            continue
        amount = re.search(r'\$?\s*([\d,]+(?:\.\d+)?\s*[MK]?)\b', rest, re.IGNORECASE)
        line_excess = re.search(r'excess\s*\$?([\d,]+)', rest, re.IGNORECASE)
        state = re.search(rf'\b({"|".join(STATE_CODES)})\b', rest)
        liability = coverage_type in LIABILITY_TYPES
        lines.append(CoverageLine(
            type=coverage_type,
            limit=parse_limit_to_number(amount.group(1)) if amount else None,
            limit_type="aggregate" if "aggregate" in rest.lower() else (
                "per_occurrence" if "occurrence" in rest.lower() else None),
            excess=(parse_limit_to_number(line_excess.group(1)) if line_excess
                    else global_excess if liability else None),
            principal_indemnity=principal if liability else None,
            cross_liability=cross if liability else None,
            waiver_of_subrogation=waiver if liability else None,
            jurisdiction=state.group(1) if state else None,
        ))
    return lines


def mock_coc_extract(text: str) -> ExtractedPolicyData:
    """Deterministic regex extraction of a plain-text Certificate of Currency"""
    period_start = period_end = None
    period = re.search(
        r'period\s+of\s+insurance\s*:\s*(\S+)\s*(?:to|-)\s*(\S+)', text, re.IGNORECASE)
    if period:
        period_start, period_end = parse_date(period.group(1)), parse_date(period.group(2))

    abn = _field(text, r'(?<!insurer )\bABN\s*:?\s*(\d[\d ]{9,13}\d)')
    data = {
        "insured_name": _field(text, r'^\s*(?:named\s+)?insured(?:\s+name)?\s*:\s*(.+)$'),
        "insured_identifier": re.sub(r'\s', '', abn) if abn else None,
        "insurer_name": _field(text, r'^\s*insurer(?:\s+name)?\s*:\s*(.+)$'),
        "policy_number": _field(text, r'policy\s+(?:number|no\.?)\s*:\s*([A-Z0-9/-]+)'),
        "period_start": period_start,
        "period_end": period_end,
        "coverages": _coverages(text),
    }

    field_confidences = {name: 1.0 if data[name] else 0.0 for name in KEY_FIELDS}
    confidence = sum(field_confidences.values()) / len(KEY_FIELDS)
    return ExtractedPolicyData(
        **data,
        extraction_confidence=round(confidence, 2),
        field_confidences=field_confidences,
    )
