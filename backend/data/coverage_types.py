# Coverage types a project can require
COVERAGE_TYPES = {
    "public_liability": {
        "name": "Public Liability",
        "description": "Third party injury and property damage arising from the insured's business",
        "liability": True,
    },
    "products_liability": {
        "name": "Products Liability",
        "description": "Injury or damage caused by products supplied or installed",
        "liability": True,
    },
    "workers_comp": {
        "name": "Workers' Compensation",
        "description": "Statutory cover for employee injury, issued per state scheme",
        "liability": False,
    },
    "professional_indemnity": {
        "name": "Professional Indemnity",
        "description": "Claims arising from professional advice or design",
        "liability": False,
    },
    "motor_vehicle": {
        "name": "Motor Vehicle",
        "description": "Comprehensive or third party property cover for vehicles",
        "liability": False,
    },
    "contract_works": {
        "name": "Contract Works",
        "description": "Material damage to the works under construction",
        "liability": False,
    },
}

# Coverage issued under a state scheme must match the project's state
JURISDICTION_BOUND_COVERAGES = {"workers_comp"}

# Liability lines below this limit are implausible on a genuine certificate
PLAUSIBLE_LIABILITY_MINIMUM = 100_000


def format_coverage_type(coverage_type: str) -> str:
    """Display name for a coverage type, falling back to title case"""
    known = COVERAGE_TYPES.get(coverage_type)
    if known:
        return known["name"]
    return (coverage_type or "").replace("_", " ").title()
