# Australian workers' compensation schemes by state/territory
STATE_WORKERS_COMP = {
    "NSW": {"regulator": "SIRA", "scheme": "icare workers insurance", "private_underwriting": False},
    "VIC": {"regulator": "WorkSafe Victoria", "scheme": "WorkSafe agents", "private_underwriting": False},
    "QLD": {"regulator": "WorkCover Queensland", "scheme": "WorkCover Queensland", "private_underwriting": False},
    "SA": {"regulator": "ReturnToWorkSA", "scheme": "ReturnToWorkSA", "private_underwriting": False},
    "WA": {"regulator": "WorkCover WA", "scheme": "Approved private insurers", "private_underwriting": True},
    "TAS": {"regulator": "WorkSafe Tasmania", "scheme": "Licensed private insurers", "private_underwriting": True},
    "ACT": {"regulator": "WorkSafe ACT", "scheme": "Approved private insurers", "private_underwriting": True},
    "NT": {"regulator": "NT WorkSafe", "scheme": "Approved private insurers", "private_underwriting": True},
}
