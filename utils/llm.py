"""Claude API client used by the analyzer, generator and chat patcher."""

import logging
import os

import anthropic

from config.defaults import get_setting

log = logging.getLogger(__name__)

_OVERLOAD_STATUS = (503, 529)
_TRANSIENT_STATUS = (408, 409, 429, 500, 502, 503, 504, 529)


class LLMError(Exception):
    """A model call failed. `overloaded` marks the service's overload signal."""

    def __init__(self, message, overloaded=False, transient=True):
        super().__init__(message)
        self.overloaded = overloaded
        self.transient = transient


def is_overloaded(exc):
    """True if exc is the external service reporting overload."""
    if isinstance(exc, LLMError):
        return exc.overloaded
    status = getattr(exc, "status_code", None)
    if status in _OVERLOAD_STATUS:
        return True
    text = str(exc).lower()
    return "overloaded" in text or "503" in text


def _wrap(exc):
    """Translate an SDK exception into an LLMError."""
    if isinstance(exc, (anthropic.APIConnectionError, anthropic.APITimeoutError)):
        return LLMError(f"Connection to model API failed: {exc}")
    if isinstance(exc, anthropic.APIStatusError):
        status = exc.status_code
        return LLMError(
            f"Model API returned {status}: {exc.message}",
            overloaded=is_overloaded(exc),
            transient=status in _TRANSIENT_STATUS,
        )
    return LLMError(str(exc), overloaded=is_overloaded(exc))


class LLMClient:
    """Thin wrapper around the Anthropic SDK.

    Constructed once by the process bootstrap (the server on first use, or the CLI) and
    passed into every agent, so tests can hand the agents a fake with the
    same `complete()` method instead.
    """

    def __init__(self, api_key=None, model=None, max_tokens=None, timeout=None, client=None):
        self.model = model or get_setting("model")
        self.max_tokens = max_tokens or get_setting("max_tokens")
        if client is not None:
            self._client = client
            return

        api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise RuntimeError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Get a key at https://console.anthropic.com/ and run:\n"
                "  export ANTHROPIC_API_KEY='your-key-here'"
            )
        # SDK-level retries are disabled; the agents own the retry policy.
        self._client = anthropic.Anthropic(
            api_key=api_key,
            timeout=timeout or get_setting("request_timeout"),
            max_retries=0,
        )

    def complete(self, prompt, system=None):
        """Send one user message and return the response text.

        Raises:
            LLMError: on any API, connection or timeout failure.
        """
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            text = ""
            with self._client.messages.stream(**kwargs) as stream:
                for chunk in stream.text_stream:
                    text += chunk
                final = stream.get_final_message()
        except anthropic.APIError as e:
            raise _wrap(e) from e
        except Exception as e:
            # Raw transport errors can surface while the stream is being read.
            raise LLMError(f"Model call failed: {e!r}") from e

        if final.stop_reason == "max_tokens":
            log.warning("Model response hit the token limit (%d tokens)", self.max_tokens)
        return text
