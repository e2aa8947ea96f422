"""Polling client that follows a generation run from outside the server process.

The generator and the client share no memory and there is no push channel,
so the client discovers progress by reading the persisted components
repeatedly until one of the stopping conditions fires.

    idle -> polling -> complete | error      (stop() from polling -> stopped)
"""

import asyncio
import logging
import math

from client.transport import ServerUnreachable, TransportError
from config.defaults import get_setting
from core.state import PollState

log = logging.getLogger(__name__)

IDLE = "idle"
POLLING = "polling"
COMPLETE = "complete"
ERROR = "error"
STOPPED = "stopped"

PREVIEW = "preview"
EDIT = "edit"


class ClientState:
    """Client-side view of the generated site: files per component, in arrival order."""

    def __init__(self):
        self.files = {}
        self.completed_components = []
        self.mode = PREVIEW

    def merge(self, files):
        """Merge a read result. Returns True if anything observable changed.

        Components are never removed; re-applying the same read is a no-op.
        """
        changed = False
        for component_id, component_files in files.items():
            component_files = dict(component_files)
            if self.files.get(component_id) != component_files:
                self.files[component_id] = component_files
                changed = True
            if component_id not in self.completed_components:
                self.completed_components.append(component_id)
                changed = True
        return changed


class Poller:
    """Polls a transport until the expected components are all persisted.

    Stopping conditions, checked after every read in this order:
      1. observed >= expected                                  -> complete
      2. attempts >= min_polls and observed >= ceil(expected * min_ratio) -> complete
      3. attempts >= max_polls                                 -> complete
      4. consecutive failures >= max_failures                  -> error
      5. server unreachable (checked on the read itself)       -> complete
    """

    def __init__(self, transport, state=None, on_update=None, sleep=asyncio.sleep,
                 base_interval=None, backoff_step=None, max_interval=None,
                 min_polls=None, min_ratio=None, max_polls=None, max_failures=None,
                 read_timeout=None):
        self.transport = transport
        self.state = state or ClientState()
        self.on_update = on_update
        self.sleep = sleep

        def _setting(value, key):
            return get_setting(key) if value is None else value

        self.base_interval = _setting(base_interval, "poll_base_interval")
        self.backoff_step = _setting(backoff_step, "poll_backoff_step")
        self.max_interval = _setting(max_interval, "poll_max_interval")
        self.min_polls = _setting(min_polls, "poll_min_polls")
        self.min_ratio = _setting(min_ratio, "poll_min_ratio")
        self.max_polls = _setting(max_polls, "poll_max_polls")
        self.max_failures = _setting(max_failures, "poll_max_failures")
        self.read_timeout = _setting(read_timeout, "poll_read_timeout")

        self.status = IDLE
        self.poll_state = None
        self.stop_reason = ""
        self._task = None

    def next_interval(self):
        """Additive backoff: base + step per consecutive failure, capped."""
        failures = self.poll_state.consecutive_failures if self.poll_state else 0
        return min(self.base_interval + failures * self.backoff_step, self.max_interval)

    def _finish(self, status, reason):
        self.status = status
        self.stop_reason = reason
        ps = self.poll_state
        log.info("Stopping polling (%s): %d/%d components after %d polls",
                 reason, len(ps.known_components), ps.target_count, ps.attempts)

    def _stop_after_success(self):
        ps = self.poll_state
        observed = len(ps.known_components)
        if observed >= ps.target_count:
            return "all components received"
        threshold = math.ceil(round(ps.target_count * self.min_ratio, 6))
        if ps.attempts >= self.min_polls and observed >= threshold:
            return "enough components received"
        return None

    async def _read(self, session_id):
        return await asyncio.wait_for(self.transport.fetch_files(session_id), self.read_timeout)

    async def run(self, session_id, expected_count):
        """Poll until a stopping condition fires. Returns the final status."""
        self.poll_state = PollState(target_count=expected_count)
        self.status = POLLING
        self.stop_reason = ""
        ps = self.poll_state
        log.info("Starting polling: session=%s, expected=%d", session_id, expected_count)

        try:
            while True:
                ps.attempts += 1
                try:
                    files = await self._read(session_id)
                except ServerUnreachable as e:
                    log.warning("Server disconnected, stopping polling: %s", e)
                    self._finish(COMPLETE, "server unreachable")
                    return self.status
                except (TransportError, asyncio.TimeoutError) as e:
                    ps.consecutive_failures += 1
                    log.warning("Polling error %d/%d: %s",
                                ps.consecutive_failures, self.max_failures, str(e) or "read timed out")
                else:
                    ps.consecutive_failures = 0
                    if self.state.merge(files) and self.on_update is not None:
                        self.on_update(self.state)
                    ps.known_components.update(files)
                    log.debug("Poll %d/%d: %d/%d components", ps.attempts, self.max_polls,
                              len(ps.known_components), ps.target_count)
                    reason = self._stop_after_success()
                    if reason:
                        self._finish(COMPLETE, reason)
                        return self.status

                if ps.attempts >= self.max_polls:
                    self._finish(COMPLETE, "max polls reached")
                    return self.status
                if ps.consecutive_failures >= self.max_failures:
                    self._finish(ERROR, "too many consecutive failures")
                    return self.status

                await self.sleep(self.next_interval())
        except asyncio.CancelledError:
            if self.status == POLLING:
                self.status = STOPPED
                self.stop_reason = "cancelled"
            raise

    def start(self, session_id, expected_count):
        """Schedule run() on the running event loop and return its task."""
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self.run(session_id, expected_count))
        return self._task

    def stop(self):
        """Cancel polling and any in-flight read."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def aclose(self):
        """stop(), then wait until the task has actually unwound."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def set_mode(self, mode):
        """Switching away from preview stops polling."""
        self.state.mode = mode
        if mode != PREVIEW:
            self.stop()
