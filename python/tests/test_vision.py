"""Tests for the vision oracle layer.

Pure unit tests: no database, no live provider calls. HTTP is mocked with
respx.
"""

import json

import httpx
import pytest
import respx

from cofish.errors import InvalidRequestError
from cofish.services.vision import (
    FrameScore,
    OpenAIVisionOracle,
    VisionError,
    VisionErrorClass,
    aggregate_frame_results,
    classify_oracle_error,
    normalize_frame_response,
)
from cofish.services.vision.openai_adapter import (
    NO_EXPLANATION,
    OPENAI_CHAT_URL,
    OPENAI_EMBEDDINGS_URL,
)

FRAME = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


def _chat(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def httpx_client():
    return httpx.AsyncClient()


@pytest.fixture
def oracle(httpx_client):
    return OpenAIVisionOracle(httpx_client, api_key="sk-test", model="test-vision-model")


# =============================================================================
# Normalization
# =============================================================================


class TestNormalizeFrameResponse:
    def test_clean_json(self):
        score = normalize_frame_response(
            _chat(
                json.dumps(
                    {
                        "aliveScore": 0.92,
                        "confidence": 0.81,
                        "species": "Striped Bass",
                        "fishFingerprint": "seven dark stripes",
                        "explanation": "Gills flaring.",
                    }
                )
            )
        )
        assert score == FrameScore(
            0.92, 0.81, "Striped Bass", "seven dark stripes", "Gills flaring."
        )

    def test_json_wrapped_in_prose(self):
        text = 'Here you go:\n```json\n{"aliveScore": 0.3, "confidence": 0.7}\n```'
        score = normalize_frame_response(_chat(text))
        assert score.alive_score == pytest.approx(0.3)
        assert score.confidence == pytest.approx(0.7)
        assert score.explanation == NO_EXPLANATION

    def test_scores_clamped(self):
        score = normalize_frame_response(_chat('{"aliveScore": 1.7, "confidence": -2}'))
        assert score.alive_score == 1.0
        assert score.confidence == 0.0

    def test_unparseable_falls_back(self):
        score = normalize_frame_response(_chat("I cannot evaluate this image."))
        assert score == FrameScore(0.5, 0.5, "", "", NO_EXPLANATION)

    def test_wrong_types_fall_back(self):
        score = normalize_frame_response(
            _chat('{"aliveScore": "high", "confidence": true, "species": 4}')
        )
        assert score.alive_score == 0.5
        assert score.confidence == 0.5
        assert score.species == ""

    def test_segmented_content(self):
        content = [{"type": "text", "text": '{"aliveScore": 0.8,'}, ' "confidence": 0.9}']
        score = normalize_frame_response(_chat(content))
        assert score.alive_score == pytest.approx(0.8)
        assert score.confidence == pytest.approx(0.9)

    def test_missing_choices(self):
        assert normalize_frame_response({}).alive_score == 0.5


# =============================================================================
# Aggregation
# =============================================================================


class TestAggregate:
    def test_means_mode_and_first_fingerprint(self):
        result = aggregate_frame_results(
            [
                FrameScore(1.0, 0.5, "Scup", "", "a"),
                FrameScore(0.5, 1.0, "Fluke", "brown spots", ""),
                FrameScore(0.0, 0.0, "Fluke", "other", "c"),
            ]
        )
        assert result.alive_score == pytest.approx(0.5)
        assert result.confidence == pytest.approx(0.5)
        assert result.species == "Fluke"
        assert result.fingerprint == "brown spots"
        assert result.explanation == "Analyzed 3 frames. a c"
        assert result.frame_count == 3

    def test_species_tie_goes_to_first_seen(self):
        result = aggregate_frame_results(
            [FrameScore(0.5, 0.5, "Scup"), FrameScore(0.5, 0.5, "Fluke")]
        )
        assert result.species == "Scup"

    def test_no_explanations(self):
        result = aggregate_frame_results([FrameScore(0.5, 0.5)])
        assert result.explanation == "Multi-frame analysis completed."
        assert result.species == ""

    def test_empty_rejected(self):
        with pytest.raises(InvalidRequestError):
            aggregate_frame_results([])


# =============================================================================
# OpenAI adapter
# =============================================================================


class TestOpenAIVisionOracle:
    @pytest.mark.asyncio
    @respx.mock
    async def test_score_frame_success(self, oracle):
        route = respx.post(OPENAI_CHAT_URL).respond(
            200, json=_chat('{"aliveScore": 0.9, "confidence": 0.8, "species": "Tautog"}')
        )

        score = await oracle.score_frame(FRAME)

        assert score.alive_score == pytest.approx(0.9)
        assert score.species == "Tautog"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "test-vision-model"
        assert body["temperature"] == 0.1
        assert body["messages"][1]["content"][1]["image_url"]["url"] == FRAME

    @pytest.mark.asyncio
    @respx.mock
    async def test_score_frame_http_error_bubbles(self, oracle):
        respx.post(OPENAI_CHAT_URL).respond(429, json={"error": {"message": "slow down"}})

        with pytest.raises(httpx.HTTPStatusError) as exc:
            await oracle.score_frame(FRAME)

        assert classify_oracle_error(exc.value).error_class == VisionErrorClass.RATE_LIMIT

    @pytest.mark.asyncio
    @respx.mock
    async def test_embed_success(self, oracle):
        route = respx.post(OPENAI_EMBEDDINGS_URL).respond(
            200, json={"data": [{"embedding": [0.1, 0.2, 0.3]}]}
        )

        embedding = await oracle.embed("seven dark stripes")

        assert embedding == [0.1, 0.2, 0.3]
        body = json.loads(route.calls.last.request.content)
        assert body == {"model": "text-embedding-3-small", "input": "seven dark stripes"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_embed_missing_vector(self, oracle):
        respx.post(OPENAI_EMBEDDINGS_URL).respond(200, json={"data": []})

        with pytest.raises(VisionError) as exc:
            await oracle.embed("x")

        assert exc.value.error_class == VisionErrorClass.BAD_RESPONSE

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_bubbles(self, oracle):
        respx.post(OPENAI_EMBEDDINGS_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        with pytest.raises(httpx.TimeoutException):
            await oracle.embed("x")


# =============================================================================
# Error classification
# =============================================================================


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", OPENAI_CHAT_URL)
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


class TestClassifyOracleError:
    @pytest.mark.parametrize(
        ("status", "error_class"),
        [
            (401, VisionErrorClass.INVALID_KEY),
            (403, VisionErrorClass.INVALID_KEY),
            (429, VisionErrorClass.RATE_LIMIT),
            (500, VisionErrorClass.PROVIDER_DOWN),
            (503, VisionErrorClass.PROVIDER_DOWN),
        ],
    )
    def test_status_codes(self, status, error_class):
        error = classify_oracle_error(_status_error(status))
        assert error.error_class == error_class
        assert error.status_code == status

    def test_timeout(self):
        error = classify_oracle_error(httpx.ConnectTimeout("slow"))
        assert error.error_class == VisionErrorClass.TIMEOUT

    def test_network(self):
        error = classify_oracle_error(httpx.ConnectError("refused"))
        assert error.error_class == VisionErrorClass.PROVIDER_DOWN

    def test_vision_error_passes_through(self):
        original = VisionError(VisionErrorClass.BAD_RESPONSE, "empty")
        assert classify_oracle_error(original) is original

    def test_anything_else_is_bad_response(self):
        error = classify_oracle_error(KeyError("choices"))
        assert error.error_class == VisionErrorClass.BAD_RESPONSE
