"""Tests for client.poller: scripted transport, recorded sleeps, asyncio.run."""

import asyncio
import logging

import pytest

from client.poller import COMPLETE, EDIT, ERROR, POLLING, STOPPED, ClientState, Poller
from client.transport import ServerUnreachable, TransportError


def _files(*component_ids):
    return {
        cid: {f"{cid}.html": f"<div id=\"{cid}\"></div>", f"{cid}.css": "", f"{cid}.js": ""}
        for cid in component_ids
    }


class ScriptedTransport:
    """Plays back results in order; the last one repeats. Exceptions are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def fetch_files(self, session_id):
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class HangingTransport:
    def __init__(self):
        self.started = asyncio.Event()

    async def fetch_files(self, session_id):
        self.started.set()
        await asyncio.Event().wait()


def _poller(transport, sleeps, **kwargs):
    async def _sleep(seconds):
        sleeps.append(seconds)

    params = dict(base_interval=3.0, backoff_step=2.0, max_interval=15.0, min_polls=10,
                  min_ratio=0.6, max_polls=20, max_failures=3, read_timeout=10.0)
    params.update(kwargs)
    return Poller(transport, sleep=_sleep, **params)


def test_stops_when_all_components_arrive():
    sleeps = []
    transport = ScriptedTransport(_files("header"), _files("header", "hero"),
                                  _files("header", "hero", "footer"))
    poller = _poller(transport, sleeps)
    status = asyncio.run(poller.run("user_1", 3))

    assert status == COMPLETE
    assert poller.poll_state.attempts == 3
    assert sleeps == [3.0, 3.0]
    assert poller.state.completed_components == ["header", "hero", "footer"]


def test_partial_results_accepted_after_min_polls():
    sleeps = []
    poller = _poller(ScriptedTransport(_files("header", "hero", "footer")), sleeps)
    status = asyncio.run(poller.run("user_1", 5))

    assert status == COMPLETE
    assert poller.stop_reason == "enough components received"
    assert poller.poll_state.attempts == 10
    assert len(poller.state.completed_components) == 3


def test_below_ratio_runs_to_max_polls():
    sleeps = []
    transport = ScriptedTransport(_files("header"))
    poller = _poller(transport, sleeps)
    status = asyncio.run(poller.run("user_1", 5))

    assert status == COMPLETE
    assert poller.stop_reason == "max polls reached"
    assert transport.calls == 20
    assert len(sleeps) == 19


def test_server_unreachable_completes_with_what_was_seen():
    sleeps = []
    transport = ScriptedTransport(_files("header", "hero"), ServerUnreachable("refused"))
    poller = _poller(transport, sleeps)
    status = asyncio.run(poller.run("user_1", 5))

    assert status == COMPLETE
    assert poller.stop_reason == "server unreachable"
    assert transport.calls == 2
    assert poller.state.completed_components == ["header", "hero"]


def test_consecutive_failures_end_in_error_with_backoff():
    sleeps = []
    poller = _poller(ScriptedTransport(TransportError("HTTP 500")), sleeps)
    status = asyncio.run(poller.run("user_1", 3))

    assert status == ERROR
    assert poller.poll_state.consecutive_failures == 3
    assert sleeps == [5.0, 7.0]


def test_success_resets_failure_count():
    sleeps = []
    transport = ScriptedTransport(
        TransportError("x"), TransportError("x"), _files("header"),
        TransportError("x"), _files("header", "hero"),
    )
    poller = _poller(transport, sleeps)
    status = asyncio.run(poller.run("user_1", 2))

    assert status == COMPLETE
    assert sleeps == [5.0, 7.0, 3.0, 5.0]


def test_read_timeout_counts_as_failure():
    sleeps = []
    poller = _poller(HangingTransport(), sleeps, read_timeout=0.01, max_failures=1)
    status = asyncio.run(poller.run("user_1", 3))
    assert status == ERROR


def test_read_timeout_is_logged_by_name(caplog):
    caplog.set_level(logging.WARNING, logger="client.poller")
    poller = _poller(HangingTransport(), [], read_timeout=0.01, max_failures=1)
    asyncio.run(poller.run("user_1", 3))
    failures = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Polling error")]
    assert failures == ["Polling error 1/1: read timed out"]


def test_interval_is_capped():
    poller = _poller(ScriptedTransport(_files()), [])
    asyncio.run(poller.run("user_1", 0))
    poller.poll_state.consecutive_failures = 50
    assert poller.next_interval() == 15.0


def test_stop_cancels_in_flight_read():
    async def _scenario():
        transport = HangingTransport()
        poller = _poller(transport, [])
        task = poller.start("user_1", 3)
        await transport.started.wait()
        assert poller.status == POLLING
        poller.stop()
        with pytest.raises(asyncio.CancelledError):
            await task
        return poller

    poller = asyncio.run(_scenario())
    assert poller.status == STOPPED


def test_switching_to_edit_mode_stops_polling():
    async def _scenario():
        transport = HangingTransport()
        poller = _poller(transport, [])
        task = poller.start("user_1", 3)
        await transport.started.wait()
        poller.set_mode(EDIT)
        with pytest.raises(asyncio.CancelledError):
            await task
        return poller

    poller = asyncio.run(_scenario())
    assert poller.status == STOPPED
    assert poller.state.mode == EDIT


def test_client_state_merge_is_monotonic_and_idempotent():
    state = ClientState()
    assert state.merge(_files("header", "hero"))
    assert not state.merge(_files("header", "hero"))
    assert not state.merge(_files("header"))
    assert state.completed_components == ["header", "hero"]

    updated = _files("hero")
    updated["hero"]["hero.css"] = "#hero{color:red}"
    assert state.merge(updated)
    assert state.files["hero"]["hero.css"] == "#hero{color:red}"


def test_on_update_called_only_on_change():
    updates = []
    transport = ScriptedTransport(_files("header"), _files("header"), _files("header", "hero"))
    poller = _poller(transport, [])
    poller.on_update = lambda state: updates.append(list(state.completed_components))
    asyncio.run(poller.run("user_1", 2))
    assert updates == [["header"], ["header", "hero"]]
