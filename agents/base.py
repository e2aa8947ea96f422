"""Base class shared by the model-backed agents."""

import logging
import time

from tenacity import Retrying, retry_if_exception, retry_if_result, stop_after_attempt

from config.defaults import get_setting
from core.state import Extraction
from utils.llm import LLMError, is_overloaded
from utils.parsing import extract_json
from utils.template_engine import render_template

log = logging.getLogger(__name__)


def _is_retryable(exc):
    if isinstance(exc, LLMError):
        return exc.transient
    return isinstance(exc, (ConnectionError, TimeoutError))


class BaseAgent:
    """Holds the injected LLM client and the retry/backoff policy.

    Retry policy: up to `attempts` calls. Between attempts wait
    `base_delay * attempt_number`, or `overload_delay` when the failure was
    the service's overload signal. Malformed output is retried like a
    transient failure. Non-transient API errors are raised immediately.
    """

    name = "base"

    def __init__(self, llm, sleep=time.sleep, base_delay=None, overload_delay=None):
        self.llm = llm
        self.sleep = sleep
        self.base_delay = get_setting("retry_base_delay") if base_delay is None else base_delay
        self.overload_delay = get_setting("overload_delay") if overload_delay is None else overload_delay

    def render_prompt(self, template_name, **variables):
        return render_template("prompts", template_name, variables)

    def _wait(self, retry_state):
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed and is_overloaded(outcome.exception()):
            log.info("[%s] Model API overloaded, waiting %ss before retry", self.name, self.overload_delay)
            return self.overload_delay
        return self.base_delay * retry_state.attempt_number

    def _log_retry(self, retry_state):
        outcome = retry_state.outcome
        if outcome.failed:
            reason = repr(outcome.exception())
        else:
            reason = outcome.result().reason
        log.warning(
            "[%s] Attempt %d failed (%s). Retrying in %.0fs...",
            self.name, retry_state.attempt_number, reason, retry_state.next_action.sleep,
        )

    @staticmethod
    def _exhausted(retry_state):
        outcome = retry_state.outcome
        if outcome.failed:
            return Extraction.malformed(f"model call failed: {outcome.exception()}")
        return outcome.result()

    def call_with_retry(self, prompt, attempts, validate=None, system=None):
        """Call the model until its response yields a valid JSON object.

        Returns:
            Extraction. `ok` is False when every attempt failed.

        Raises:
            LLMError: for non-transient failures (bad credentials, bad request).
            Any other exception the client raises that is not a connection
            or timeout error is passed through unchanged.
        """
        def _attempt():
            text = self.llm.complete(prompt, system=system)
            return extract_json(text, validate=validate)

        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=self._wait,
            retry=retry_if_exception(_is_retryable) | retry_if_result(lambda r: not r.ok),
            before_sleep=self._log_retry,
            retry_error_callback=self._exhausted,
            sleep=self.sleep,
        )
        return retrying(_attempt)
