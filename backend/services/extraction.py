import json
import logging

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from config import get_api_key, MOCK_MODE, OPENAI_MODEL
from errors import ExtractionUnavailable
from prompts.coc import COC_EXTRACTION_PROMPT
from schemas.verification import ExtractedPolicyData
from services.mock.coc import mock_coc_extract

logger = logging.getLogger(__name__)

# Lazy client initialization
_client = None


def get_client():
    global _client
    if _client is None:
        api_key = get_api_key()
        if not api_key:
            raise ExtractionUnavailable(
                "OPENAI_API_KEY not configured. Set it in environment, .env file, or ~/.openai/api_key"
            )
        _client = OpenAI(api_key=api_key)
    return _client


def clean_llm_response(response_text: str) -> str:
    """Clean up potential markdown formatting from LLM JSON responses.

    Handles the common pattern where LLMs wrap JSON in ```json``` code blocks.
    """
    if response_text.startswith("```"):
        response_text = response_text.split("```")[1]
        if response_text.startswith("json"):
            response_text = response_text[4:]
    return response_text.strip()


def extract_policy_data(text: str) -> ExtractedPolicyData:
    """Extract certificate fields with the OpenAI chat API.

    Raises ExtractionUnavailable when the model cannot be reached or its
    answer is not a usable extraction; no verdict is produced in that case.
    """
    prompt = COC_EXTRACTION_PROMPT.replace("<<DOCUMENT>>", text)
    try:
        response = get_client().chat.completions.create(
            model=OPENAI_MODEL,
            max_completion_tokens=4096,
            messages=[{"role": "user", "content": prompt}]
        )
    except OpenAIError as e:
        logger.error("Extraction request failed: %s", e)
        raise ExtractionUnavailable(f"Extraction service unavailable: {e}") from e

    response_text = clean_llm_response(response.choices[0].message.content or "")
    try:
        return ExtractedPolicyData.model_validate(json.loads(response_text))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error("Extraction returned unusable data: %s", e)
        raise ExtractionUnavailable(f"Failed to parse extraction response: {e}") from e


def get_extractor():
    """FastAPI dependency returning the extraction callable for this process"""
    if MOCK_MODE:
        return mock_coc_extract
    return extract_policy_data
