import re

# Certificate of currency layouts for the major Australian insurers
INSURER_TEMPLATES = {
    "qbe": {
        "name": "QBE Insurance (Australia) Limited",
        "policy_number_pattern": re.compile(r"^QBE[A-Z]{2}\d{8}$"),
    },
    "allianz": {
        "name": "Allianz Australia Insurance Limited",
        "policy_number_pattern": re.compile(r"^ALZ\d{10}$"),
    },
    "cgu": {
        "name": "CGU Insurance Limited",
        "policy_number_pattern": re.compile(r"^CGU\d{9}$"),
    },
    "suncorp": {
        "name": "Suncorp Group Limited",
        "policy_number_pattern": re.compile(r"^SUN\d{9}$"),
    },
    "zurich": {
        "name": "Zurich Australian Insurance Limited",
        "policy_number_pattern": re.compile(r"^ZUR[A-Z]\d{8}$"),
    },
    "vero": {
        "name": "Vero Insurance",
        "policy_number_pattern": re.compile(r"^VER\d{9}$"),
    },
    "aig": {
        "name": "AIG Australia Limited",
        "policy_number_pattern": re.compile(r"^AIG\d{10}$"),
    },
    "chubb": {
        "name": "Chubb Insurance Australia Limited",
        "policy_number_pattern": re.compile(r"^CHB\d{10}$"),
    },
}

# PDF producers that indicate the certificate was edited after issue
SUSPICIOUS_SOFTWARE = [
    "Adobe Photoshop",
    "GIMP",
    "Paint.NET",
    "Foxit PhantomPDF",
    "PDFelement",
    "Nitro Pro",
    "PDF Editor",
    "iLovePDF",
    "SmallPDF",
    "PDF Escape",
]

# Policy administration and reporting systems insurers issue certificates from
LEGITIMATE_SOFTWARE = [
    "Adobe Acrobat",
    "Microsoft Word",
    "Microsoft Excel",
    "Crystal Reports",
    "SAP",
    "Oracle",
    "IBM Cognos",
    "Guidewire",
    "Duck Creek",
]
