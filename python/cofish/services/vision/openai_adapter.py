"""OpenAI vision oracle.

Frame scoring:
- Endpoint: POST https://api.openai.com/v1/chat/completions
- One user message with a text part (the instructions) and an image_url part
- temperature 0.1
- Response text = choices[0].message.content, expected to hold one JSON object:
  {"aliveScore", "confidence", "species", "fishFingerprint", "explanation"}

Embeddings:
- Endpoint: POST https://api.openai.com/v1/embeddings
- Response vector = data[0].embedding

Normalization is lenient: the outermost {...} is extracted from the text,
scores are clamped to [0, 1], and anything missing or unparseable falls
back to 0.5 scores and empty strings.
"""

import json
import math

import httpx

from cofish.logging import get_logger
from cofish.services.vision.adapter import VisionOracle
from cofish.services.vision.errors import VisionError, VisionErrorClass
from cofish.services.vision.types import FrameScore

logger = get_logger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_EMBEDDINGS_URL = "https://api.openai.com/v1/embeddings"

DEFAULT_SCORE = 0.5
NO_EXPLANATION = "No structured explanation returned."

SYSTEM_PROMPT = (
    "You are an assistant that evaluates fish photos for liveness and uniqueness. "
    "Be thorough and look for specific visual indicators."
)

FRAME_PROMPT = """You are analyzing a photo of a fish from a short fishing video.

Return ONLY JSON (no extra text) with these keys:
- "aliveScore": number between 0 and 1 (1 = clearly alive or freshly caught, 0 = clearly dead, frozen, or fake).
- "confidence": number between 0 and 1 for how confident you are in the aliveScore.
- "species": the most likely fish species name.
- "fishFingerprint": a short, specific description of the fish's appearance (colors, patterns, marks, approximate size).
- "explanation": 1-3 sentences explaining the aliveScore.
"""


class OpenAIVisionOracle(VisionOracle):
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: str,
        model: str = "gpt-4o-mini",
        embedding_model: str = "text-embedding-3-small",
        timeout_s: int = 60,
    ):
        super().__init__(client)
        self._api_key = api_key
        self._model = model
        self._embedding_model = embedding_model
        self._timeout_s = timeout_s

    async def score_frame(self, image_data_url: str) -> FrameScore:
        response = await self._client.post(
            OPENAI_CHAT_URL,
            headers=self._build_headers(),
            json={
                "model": self._model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": FRAME_PROMPT},
                            {"type": "image_url", "image_url": {"url": image_data_url}},
                        ],
                    },
                ],
                "temperature": 0.1,
            },
            timeout=httpx.Timeout(self._timeout_s, connect=10.0),
        )
        response.raise_for_status()
        return normalize_frame_response(response.json())

    async def embed(self, text: str) -> list[float]:
        response = await self._client.post(
            OPENAI_EMBEDDINGS_URL,
            headers=self._build_headers(),
            json={"model": self._embedding_model, "input": text},
            timeout=httpx.Timeout(self._timeout_s, connect=10.0),
        )
        response.raise_for_status()

        data = response.json()
        try:
            embedding = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError):
            embedding = None
        if not isinstance(embedding, list) or not embedding:
            raise VisionError(VisionErrorClass.BAD_RESPONSE, "Embedding not found in response")
        return [float(x) for x in embedding]

    def _build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }


def clamp01(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def _content_text(data: dict) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""

    # content may be a list of segments
    if isinstance(content, list):
        return " ".join(
            part if isinstance(part, str) else str(part.get("text", "")) for part in content
        )
    return content if isinstance(content, str) else ""


def normalize_frame_response(data: dict) -> FrameScore:
    """Extract the model's JSON object and coerce it to a FrameScore."""
    alive_score = DEFAULT_SCORE
    confidence = DEFAULT_SCORE
    explanation = NO_EXPLANATION
    fingerprint = ""
    species = ""

    text = _content_text(data).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end >= start:
        text = text[start : end + 1]

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("vision_response_unparseable", length=len(text))
        parsed = {}

    if isinstance(parsed, dict):
        raw_alive = parsed.get("aliveScore")
        if isinstance(raw_alive, (int, float)) and not isinstance(raw_alive, bool):
            alive_score = clamp01(float(raw_alive))
        raw_confidence = parsed.get("confidence")
        if isinstance(raw_confidence, (int, float)) and not isinstance(raw_confidence, bool):
            confidence = clamp01(float(raw_confidence))
        if isinstance(parsed.get("explanation"), str):
            explanation = parsed["explanation"]
        if isinstance(parsed.get("fishFingerprint"), str):
            fingerprint = parsed["fishFingerprint"]
        if isinstance(parsed.get("species"), str):
            species = parsed["species"]

    return FrameScore(
        alive_score=alive_score,
        confidence=confidence,
        species=species,
        fingerprint=fingerprint,
        explanation=explanation,
    )
