"""
Remote Presence Oracle - Asks a Gemini multimodal model about each frame

Any transport or parse failure degrades to a safe default so that a
flaky network never manufactures a violation.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from .base import DetectionOracle
from ..errors import OracleTransportError
from ..events import DetectionResult
from ..sampler import FrameSample

logger = logging.getLogger(__name__)


PRESENCE_PROMPT = (
    "Analyze this webcam frame for proctoring. Is there exactly one person clearly "
    "visible and facing the camera? Return a JSON object with 'isPersonPresent' "
    "(boolean), 'count' (number of people), and 'description' (short explanation)."
)

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "isPersonPresent": {"type": "BOOLEAN"},
        "count": {"type": "INTEGER"},
        "description": {"type": "STRING"},
    },
    "required": ["isPersonPresent", "count", "description"],
}

DEGRADED_RESULT = DetectionResult(
    person_present=True,
    count=1,
    description="Analysis failed, assuming safe.",
    degraded=True,
)


class PresenceAssessment(BaseModel):
    """Schema the model is instructed to answer with"""

    is_person_present: bool = Field(..., alias="isPersonPresent")
    count: int = Field(..., ge=0)
    description: str


class RemotePresenceOracle(DetectionOracle):
    """
    Presence detection through the Gemini ``generateContent`` REST API.
    """

    name = "remote"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-3-flash-preview",
        endpoint: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

        if not api_key:
            logger.warning("[RemoteOracle] No GEMINI_API_KEY configured, every check will degrade")

    @property
    def url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def build_payload(self, sample: FrameSample) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"inlineData": {"mimeType": "image/jpeg", "data": sample.base64_jpeg}},
                        {"text": PRESENCE_PROMPT},
                    ]
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    async def _request(self, sample: FrameSample) -> PresenceAssessment:
        if not self.api_key:
            raise OracleTransportError("GEMINI_API_KEY is not set")

        try:
            response = await self._get_client().post(
                self.url,
                headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
                json=self.build_payload(sample),
            )
        except httpx.HTTPError as e:
            raise OracleTransportError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            raise OracleTransportError(
                f"Gemini API error: {response.status_code} - {response.text[:200]}"
            )

        try:
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
            return PresenceAssessment.model_validate_json(text)
        except (ValueError, KeyError, IndexError, TypeError, ValidationError) as e:
            raise OracleTransportError(f"Unparseable Gemini response: {e}") from e

    async def detect(self, sample: FrameSample) -> DetectionResult:
        try:
            assessment = await self._request(sample)
        except OracleTransportError as e:
            logger.error(f"[RemoteOracle] Gemini analysis failed: {e}")
            return DEGRADED_RESULT

        logger.debug(f"[RemoteOracle] Result: {assessment}")
        return DetectionResult(
            person_present=assessment.is_person_present,
            count=assessment.count,
            description=assessment.description,
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
