"""
Receipt extraction using Gemini

Sends a receipt image to Gemini with a prompt asking for the ledger fields
as JSON, then parses the reply into a CandidateEntry.

BOUNDARIES:
1. This service ONLY proposes fields - it never writes to the ledger
2. A reply that is not valid JSON, or does not match the candidate
   schema, is an ExternalServiceError. It is never patched up.
3. An empty JSON object means "not a receipt" and returns None

The Gemini client is created lazily on first use, and get_receipt_scanner()
hands out one process-wide scanner.
"""

import json
import re
from functools import lru_cache
from typing import Any, Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ledger_engine.config import AppSettings, GeminiSettings, get_settings
from ledger_engine.errors import ExternalServiceError, ValidationError
from ledger_engine.models.transaction import EXPENSE_CATEGORIES, CandidateEntry

logger = structlog.get_logger(__name__)

SERVICE_NAME = "gemini"

_CODE_FENCE = re.compile(r"```(?:json)?\n?")

# Gemini API failures worth another attempt; anything else is surfaced at once
TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.ResourceExhausted,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
)

RECEIPT_PROMPT = """
Analyze this receipt image and extract the following information in JSON format:
- Total amount (just the number)
- Date (in ISO format)
- Description or items purchased (brief summary)
- Merchant/store name
- Suggested category (one of: {categories})

Only respond with valid JSON in this exact format:
{{
  "amount": number,
  "date": "ISO date string",
  "description": "string",
  "merchantName": "string",
  "category": "string"
}}

If its not a receipt, return an empty object"""


class GeminiReceiptScanner:
    """Field extraction adapter backed by a Gemini multimodal model."""

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        app_settings: Optional[AppSettings] = None,
        model: Optional[Any] = None,
    ):
        self._settings = settings
        self._app_settings = app_settings or get_settings().app
        self._model = model

    def _get_model(self) -> Any:
        """Get or create the Gemini model handle."""
        if self._model is None:
            settings = self._settings or get_settings().gemini
            genai.configure(api_key=settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=settings.model_name,
                generation_config={
                    "temperature": settings.temperature,
                    "max_output_tokens": settings.max_tokens,
                },
            )
        return self._model

    @staticmethod
    def build_prompt() -> str:
        categories = ",".join(category.value for category in EXPENSE_CATEGORIES)
        return RECEIPT_PROMPT.format(categories=categories)

    def check_upload(self, image_bytes: bytes, mime_type: str) -> str:
        """
        Reject uploads Gemini should never see.

        Raises:
            ValidationError: Empty, oversized or unsupported image
        """
        mime_type = (mime_type or "").lower()
        allowed = self._app_settings.supported_types_list

        if mime_type not in allowed:
            raise ValidationError(
                f"Unsupported image type: {mime_type or 'unknown'}. Allowed: {', '.join(allowed)}"
            )
        if not image_bytes:
            raise ValidationError("Receipt image is empty")
        if len(image_bytes) > self._app_settings.max_upload_size_bytes:
            raise ValidationError(
                f"Receipt image exceeds {self._app_settings.max_upload_size_mb} MB"
            )
        return mime_type

    async def extract(self, image_bytes: bytes, mime_type: str) -> Optional[CandidateEntry]:
        """
        Extract candidate ledger fields from a receipt image.

        Returns:
            CandidateEntry, or None if the image is not a receipt

        Raises:
            ValidationError: If the upload is rejected before the call
            ExternalServiceError: If Gemini fails or replies with malformed data
        """
        mime_type = self.check_upload(image_bytes, mime_type)

        try:
            text = await self._generate(image_bytes, mime_type)
        except Exception as e:
            logger.error("receipt_scan_failed", service=SERVICE_NAME, error=str(e))
            raise ExternalServiceError(SERVICE_NAME, f"Failed to scan receipt: {e}") from e

        return self.parse_response(text)

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate(self, image_bytes: bytes, mime_type: str) -> str:
        model = self._get_model()
        response = await model.generate_content_async([
            {"mime_type": mime_type, "data": image_bytes},
            self.build_prompt(),
        ])
        # response.text raises ValueError when the reply was blocked
        return response.text

    def parse_response(self, text: Optional[str]) -> Optional[CandidateEntry]:
        """
        Parse Gemini's reply.

        Raises:
            ExternalServiceError: If the reply is not a JSON object or does
                not match the CandidateEntry schema
        """
        cleaned = _CODE_FENCE.sub("", text or "").strip()

        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise ExternalServiceError(
                SERVICE_NAME, "Invalid response format from Gemini"
            ) from e

        if not isinstance(data, dict):
            raise ExternalServiceError(
                SERVICE_NAME, "Gemini response is not a JSON object"
            )

        if not data:
            return None

        try:
            return CandidateEntry.model_validate(data)
        except PydanticValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise ExternalServiceError(
                SERVICE_NAME,
                f"Gemini response has invalid fields: {', '.join(fields) or 'unknown'}",
            ) from e


@lru_cache()
def get_receipt_scanner() -> GeminiReceiptScanner:
    """Process-wide scanner; the Gemini client inside it is built on first scan."""
    return GeminiReceiptScanner()
