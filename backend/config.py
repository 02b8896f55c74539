import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.environ.get("DATABASE_URL")

# Mock mode (deterministic extraction without an API key)
MOCK_MODE = os.environ.get("MOCK_MODE", "false").lower() == "true"

# OpenAI
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Verification engine
REVIEW_CONFIDENCE_THRESHOLD = float(os.environ.get("REVIEW_CONFIDENCE_THRESHOLD", "0.70"))
EXPIRY_WARNING_DAYS = int(os.environ.get("EXPIRY_WARNING_DAYS", "30"))
DEFICIENCY_DUE_DAYS = int(os.environ.get("DEFICIENCY_DUE_DAYS", "14"))

# Roles allowed to skip the exception approval step
AUTO_APPROVE_ROLES = ("admin", "risk_manager")
EXCEPTION_CREATOR_ROLES = ("admin", "risk_manager", "project_manager")


def get_api_key():
    key = os.environ.get("OPENAI_API_KEY")
    if key:
        return key
    env_path = Path(__file__).parent / ".env"
    if env_path.exists():
        with open(env_path) as f:
            for line in f:
                if line.startswith("OPENAI_API_KEY="):
                    key = line.split("=", 1)[1].strip()
                    if key:
                        return key
    home_config = Path.home() / ".openai" / "api_key"
    if home_config.exists():
        return home_config.read_text().strip()
    return None
