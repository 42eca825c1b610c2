"""
AI Extraction Fallback

Last-resort extraction with Google Gemini: the raw document is sent to the
model, which returns a JSON list of transactions. Any failure yields None
so the orchestrator treats it as one more insufficient tier.
"""
import json
import os
from typing import Optional, List, Callable

import google.generativeai as genai

from ledgerflow.common.logging_config import get_logger

logger = get_logger(__name__)

# (buffer, mime_type) -> raw transaction dicts, or None
AIExtractionFallback = Callable[[bytes, str], Optional[List[dict]]]

PROMPT = """
You are an expert in reading bank statements.
Extract every transaction from the attached document.

- Ignore headers, opening/closing balances and total rows.
- Dates in ISO format (YYYY-MM-DD).
- "amount" is signed: negative for withdrawals/debits, positive for deposits/credits.
- "balance" is the running balance printed on the row, or null.

Return strictly valid JSON (no markdown): a list of objects
{"date": "...", "description": "...", "amount": 0.0, "balance": null, "reference": null}
"""


def parse_model_output(raw_text: str) -> Optional[List[dict]]:
    """Strip markdown fences and decode the model's JSON list."""
    clean_text = raw_text.replace("```json", "").replace("```", "").strip()
    data = json.loads(clean_text)
    if isinstance(data, dict):
        data = data.get('transactions', [])
    if not isinstance(data, list):
        return None
    return [item for item in data if isinstance(item, dict)]


class GeminiStatementExtractor:
    """
    Callable AI fallback backed by Gemini.
    """

    def __init__(self, api_key: Optional[str] = None, model_name: str = 'gemini-2.5-flash'):
        """
        Initialize extractor with API key.

        Args:
            api_key: Google Gemini API key (falls back to $GEMINI_API_KEY)
            model_name: Gemini model to use
        """
        api_key = api_key or os.getenv('GEMINI_API_KEY')
        if not api_key:
            raise ValueError("API Key is required for Gemini Statement Extractor")

        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(model_name)

    def __call__(self, buffer: bytes, mime_type: str) -> Optional[List[dict]]:
        try:
            response = self.model.generate_content([PROMPT, {'mime_type': mime_type, 'data': buffer}])
            records = parse_model_output(response.text)
        except Exception as e:
            logger.error(f"Gemini extraction error: {e}", error_type=type(e).__name__)
            return None

        logger.info("AI fallback returned records", count=len(records) if records else 0)
        return records
