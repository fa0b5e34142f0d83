from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from invoice_ingest.errors import ErrorCode
from invoice_ingest.extraction.exceptions import ExtractionError
from invoice_ingest.extraction.openai_client_adapter import OpenAIVisionClient, to_data_url
from invoice_ingest.pdf.models import RasterImage

_IMAGE = RasterImage(data=b"\xff\xd8jpeg", width=10, height=10, mime_type="image/jpeg", file_name="a.jpg")


def _make_mock_response(content: str | None) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


def _make_adapter(mock_client: MagicMock) -> OpenAIVisionClient:
    with patch(
        "invoice_ingest.extraction.openai_client_adapter.openai.AsyncOpenAI",
        return_value=mock_client,
    ):
        return OpenAIVisionClient(api_key="k", timeout_seconds=30, base_url=None)


async def _call(adapter: OpenAIVisionClient) -> str:
    return await adapter.create_vision_completion(
        model="m",
        temperature=0.1,
        max_tokens=100,
        system_prompt="system",
        user_prompt="user",
        images=[_IMAGE],
        json_schema={"type": "object"},
    )


def _status_error(status_code: int, message: str) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status_code, request=request)
    return openai.APIStatusError(message, response=response, body=None)


def _mock_client(**create_kwargs: object) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(**create_kwargs)
    return client


class TestToDataUrl:
    def test_encodes_mime_and_base64(self) -> None:
        assert to_data_url(_IMAGE) == "data:image/jpeg;base64,/9hqcGVn"


class TestOpenAIVisionClient:
    @pytest.mark.asyncio
    async def test_returns_content(self) -> None:
        client = _mock_client(return_value=_make_mock_response('{"ok": true}'))
        adapter = _make_adapter(client)

        assert await _call(adapter) == '{"ok": true}'

    @pytest.mark.asyncio
    async def test_sends_images_and_strict_schema(self) -> None:
        client = _mock_client(return_value=_make_mock_response("{}"))
        adapter = _make_adapter(client)

        await _call(adapter)

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["max_tokens"] == 100
        assert kwargs["response_format"]["json_schema"]["strict"] is True
        user_content = kwargs["messages"][1]["content"]
        assert user_content[0] == {"type": "text", "text": "user"}
        assert user_content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")

    def test_disables_sdk_retries(self) -> None:
        with patch(
            "invoice_ingest.extraction.openai_client_adapter.openai.AsyncOpenAI"
        ) as mock_cls:
            OpenAIVisionClient(api_key="k", timeout_seconds=30, base_url="http://localhost:11434/v1")
        assert mock_cls.call_args.kwargs["max_retries"] == 0
        assert mock_cls.call_args.kwargs["base_url"] == "http://localhost:11434/v1"

    @pytest.mark.asyncio
    async def test_empty_content_is_no_response(self) -> None:
        adapter = _make_adapter(_mock_client(return_value=_make_mock_response(None)))
        with pytest.raises(ExtractionError) as exc_info:
            await _call(adapter)
        assert exc_info.value.code is ErrorCode.AI_NO_RESPONSE

    @pytest.mark.asyncio
    async def test_no_choices_is_no_response(self) -> None:
        response = MagicMock()
        response.choices = []
        adapter = _make_adapter(_mock_client(return_value=response))
        with pytest.raises(ExtractionError) as exc_info:
            await _call(adapter)
        assert exc_info.value.code is ErrorCode.AI_NO_RESPONSE

    @pytest.mark.asyncio
    async def test_connection_error_is_service_unavailable(self) -> None:
        adapter = _make_adapter(
            _mock_client(side_effect=openai.APIConnectionError(request=MagicMock()))
        )
        with pytest.raises(ExtractionError, match="network error") as exc_info:
            await _call(adapter)
        assert exc_info.value.code is ErrorCode.AI_SERVICE_UNAVAILABLE
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_timeout_is_processing_timeout(self) -> None:
        adapter = _make_adapter(_mock_client(side_effect=httpx.TimeoutException("timeout")))
        with pytest.raises(ExtractionError) as exc_info:
            await _call(adapter)
        assert exc_info.value.code is ErrorCode.AI_PROCESSING_TIMEOUT

    @pytest.mark.asyncio
    async def test_rate_limit_status(self) -> None:
        adapter = _make_adapter(_mock_client(side_effect=_status_error(429, "Too many requests")))
        with pytest.raises(ExtractionError) as exc_info:
            await _call(adapter)
        assert exc_info.value.code is ErrorCode.AI_RATE_LIMIT

    @pytest.mark.asyncio
    async def test_bad_request_is_not_retryable(self) -> None:
        adapter = _make_adapter(_mock_client(side_effect=_status_error(400, "invalid_file: bad image")))
        with pytest.raises(ExtractionError) as exc_info:
            await _call(adapter)
        assert exc_info.value.code is ErrorCode.AI_INVALID_FILE
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_generic_api_error(self) -> None:
        adapter = _make_adapter(
            _mock_client(side_effect=openai.APIError(message="server_error", request=MagicMock(), body=None))
        )
        with pytest.raises(ExtractionError, match="API error") as exc_info:
            await _call(adapter)
        assert exc_info.value.code is ErrorCode.AI_SERVICE_UNAVAILABLE
