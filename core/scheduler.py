"""Serial, rate-limited driver of the component generator."""

import logging
import time
from dataclasses import replace

from agents.fallbacks import fallback_artifact
from config.defaults import get_setting
from core.state import GenerationSummary
from core.store import StorageError

log = logging.getLogger(__name__)


def cap_plan(components, limit):
    """Truncate to `limit` ids, keeping footer as the last item when present."""
    components = list(components)
    if len(components) <= limit:
        return components
    if "footer" in components:
        rest = [c for c in components if c != "footer"]
        return rest[:limit - 1] + ["footer"]
    return components[:limit]


class ComponentScheduler:
    """Generates a plan's components one at a time, in plan order.

    Exactly one model-backed generation is in flight at any moment, and a
    fixed `delay` separates the end of one component from the start of the
    next whether it succeeded or fell back. Each artifact is saved as soon as
    it exists; a failed save is logged and the loop moves on.
    """

    def __init__(self, generator, store, delay=None, max_components=None, sleep=time.sleep):
        self.generator = generator
        self.store = store
        self.delay = get_setting("inter_call_delay") if delay is None else delay
        self.max_components = max_components or get_setting("max_components")
        self.sleep = sleep

    def run(self, session_id, plan, request, on_component=None):
        components = cap_plan(plan.components, self.max_components)
        if len(components) < len(plan.components):
            log.warning("Plan has %d components, generating only %s",
                        len(plan.components), ", ".join(components))
            plan = replace(plan, components=tuple(components))
        summary = GenerationSummary(session_id=session_id, plan=plan)

        try:
            self.store.create(session_id)
        except StorageError as e:
            log.error("Could not pre-create session %s: %s", session_id, e)

        log.info("Generating %d components with %ss intervals...", len(components), self.delay)
        for index, component_id in enumerate(components):
            log.info("Generating %s component (%d/%d)...", component_id, index + 1, len(components))
            try:
                artifact = self.generator.generate(component_id, request)
            except Exception:
                log.exception("Generator failed for %s, using fallback", component_id)
                artifact = fallback_artifact(component_id, request)
            if artifact.is_fallback:
                summary.fallbacks.append(component_id)

            try:
                self.store.write(session_id, component_id, artifact)
                summary.generated.append(component_id)
            except StorageError as e:
                log.error("Failed to save %s: %s", component_id, e)
                summary.save_failures[component_id] = str(e)

            if on_component is not None:
                on_component(artifact)

            if index < len(components) - 1:
                log.info("Waiting %ss for API rate limit...", self.delay)
                self.sleep(self.delay)

        summary.status = "done"
        log.info("Session %s finished: %d saved, %d fallbacks, %d save failures",
                 session_id, len(summary.generated), len(summary.fallbacks),
                 len(summary.save_failures))
        return summary
