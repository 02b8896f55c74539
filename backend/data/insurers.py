# General insurers authorised by APRA to write commercial liability and
# workers' compensation business. Matching is case-insensitive on the
# whitespace-collapsed name.
LICENSED_INSURERS = [
    "QBE Insurance (Australia) Limited",
    "Allianz Australia Insurance Limited",
    "Suncorp Group Limited",
    "AAI Limited",
    "CGU Insurance Limited",
    "Insurance Australia Limited",
    "Zurich Australian Insurance Limited",
    "AIG Australia Limited",
    "Vero Insurance",
    "GIO General Limited",
    "Chubb Insurance Australia Limited",
    "Liberty Mutual Insurance Company",
    "HDI Global Specialty SE",
    "Lloyd's Underwriters",
    "Berkshire Hathaway Specialty Insurance Company",
    "Hollard Insurance Company Pty Ltd",
    "XL Insurance Company SE",
    "Great Lakes Insurance SE",
]
