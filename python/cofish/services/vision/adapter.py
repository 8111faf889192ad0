"""Abstract base class for vision oracles.

Rules:
- Async, on a shared httpx.AsyncClient
- No retries inside adapters
- No DB access
- No logging of image data or raw responses
- Raw provider errors bubble up; callers classify them with
  cofish.services.vision.errors.classify_oracle_error
"""

from abc import ABC, abstractmethod

import httpx

from cofish.services.vision.types import FrameScore


class VisionOracle(ABC):
    """Scores single frames and embeds fingerprint text."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    @abstractmethod
    async def score_frame(self, image_data_url: str) -> FrameScore:
        """Score one frame (a data: URL such as data:image/jpeg;base64,...).

        Raises:
            httpx.HTTPStatusError: On non-2xx HTTP response.
            httpx.TimeoutException: On request timeout.
            httpx.NetworkError: On network failure.
        """

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed fingerprint text into a float vector.

        Raises:
            httpx.HTTPError: On transport or status failure.
            VisionError(BAD_RESPONSE): If no embedding is present in the response.
        """
