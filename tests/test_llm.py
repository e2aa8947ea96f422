"""Tests for utils.llm: the SDK is replaced by a MagicMock client."""

from unittest.mock import MagicMock

import httpx
import pytest
import anthropic

from utils.llm import LLMClient, LLMError, _wrap, is_overloaded


def _status_error(status, message="boom"):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status, request=request)
    return anthropic.APIStatusError(message, response=response, body=None)


def _sdk_returning(chunks, stop_reason="end_turn"):
    stream = MagicMock()
    stream.text_stream = iter(chunks)
    stream.get_final_message.return_value = MagicMock(stop_reason=stop_reason)
    sdk = MagicMock()
    sdk.messages.stream.return_value.__enter__.return_value = stream
    return sdk


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(RuntimeError, match="ANTHROPIC_API_KEY"):
        LLMClient()


def test_complete_joins_stream_chunks():
    sdk = _sdk_returning(['{"a"', ": 1}"])
    client = LLMClient(client=sdk, model="test-model", max_tokens=100)
    assert client.complete("hello", system="be brief") == '{"a": 1}'
    kwargs = sdk.messages.stream.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["system"] == "be brief"
    assert kwargs["messages"] == [{"role": "user", "content": "hello"}]


def test_complete_wraps_api_errors():
    sdk = MagicMock()
    sdk.messages.stream.side_effect = _status_error(529, "Overloaded")
    client = LLMClient(client=sdk)
    with pytest.raises(LLMError) as exc_info:
        client.complete("hi")
    assert exc_info.value.overloaded
    assert exc_info.value.transient


def test_complete_wraps_errors_raised_while_streaming():
    def _chunks():
        yield '{"a"'
        raise ConnectionResetError(104, "Connection reset by peer")

    sdk = _sdk_returning([])
    sdk.messages.stream.return_value.__enter__.return_value.text_stream = _chunks()
    client = LLMClient(client=sdk)
    with pytest.raises(LLMError) as exc_info:
        client.complete("hi")
    assert exc_info.value.transient
    assert isinstance(exc_info.value.__cause__, ConnectionResetError)


def test_wrap_bad_request_is_not_transient():
    err = _wrap(_status_error(400))
    assert not err.transient
    assert not err.overloaded


def test_wrap_rate_limit_is_transient():
    err = _wrap(_status_error(429))
    assert err.transient
    assert not err.overloaded


def test_is_overloaded_text_signal():
    assert is_overloaded(Exception("Service overloaded, try later"))
    assert not is_overloaded(Exception("bad request"))
    assert is_overloaded(LLMError("x", overloaded=True))
