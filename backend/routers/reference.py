from fastapi import APIRouter, HTTPException
from data.coverage_types import COVERAGE_TYPES, JURISDICTION_BOUND_COVERAGES
from data.insurers import LICENSED_INSURERS
from data.insurer_templates import INSURER_TEMPLATES
from data.jurisdictions import STATE_WORKERS_COMP

router = APIRouter(prefix="/api", tags=["reference"])


@router.get("/coverage-types")
async def get_coverage_types():
    """Get the coverage types a project can require"""
    return {
        key: {
            "name": val["name"],
            "description": val["description"],
            "jurisdiction_bound": key in JURISDICTION_BOUND_COVERAGES,
        }
        for key, val in COVERAGE_TYPES.items()
    }


@router.get("/insurers")
async def get_insurers():
    """Get authorised insurers and the certificate templates we recognise"""
    return {
        "insurers": sorted(LICENSED_INSURERS),
        "templates": [
            {
                "key": key,
                "name": template["name"],
                "policy_number_format": template["policy_number_pattern"].pattern,
            }
            for key, template in INSURER_TEMPLATES.items()
        ],
    }


@router.get("/jurisdictions")
async def get_jurisdictions():
    """Get list of states with their workers' compensation scheme"""
    return [
        {"code": code, **scheme}
        for code, scheme in sorted(STATE_WORKERS_COMP.items())
    ]


@router.get("/jurisdictions/{state_code}")
async def get_jurisdiction(state_code: str):
    """Get workers' compensation details for one state"""
    state_upper = state_code.upper()
    if state_upper not in STATE_WORKERS_COMP:
        raise HTTPException(status_code=404, detail=f"State {state_upper} not found")

    scheme = STATE_WORKERS_COMP[state_upper]
    return {
        "state": state_upper,
        "workers_comp": {
            **scheme,
            "notes": ("Policies may be issued by approved private insurers"
                      if scheme["private_underwriting"] else "Must be issued through the state scheme"),
        },
    }
