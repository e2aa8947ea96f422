"""Main pipeline orchestrator: analyze → generate → persist, plus chat edits."""

import logging
import time
from dataclasses import replace

from agents.analyzer import RequirementAnalyzer
from agents.chat_patcher import ChatPatcher
from agents.generator import ComponentGenerator
from config.defaults import get_setting
from core.scheduler import ComponentScheduler, cap_plan
from core.state import ComponentArtifact
from core.store import PersistenceStore, StorageError
from utils.folder_naming import new_session_id

log = logging.getLogger(__name__)


class Orchestrator:
    """Wires the agents, scheduler and store around one injected LLM client.

    Flow for a new site: plan() picks the components, start_session() creates
    the session directory, generate() runs the serial loop and persists each
    component as it lands. patch() handles chat edits against a session.
    """

    def __init__(self, llm, store=None, sleep=time.sleep):
        self.llm = llm
        self.store = store or PersistenceStore()
        self.analyzer = RequirementAnalyzer(llm, sleep=sleep)
        self.generator = ComponentGenerator(llm, sleep=sleep)
        self.chat = ChatPatcher(llm, sleep=sleep)
        self.scheduler = ComponentScheduler(self.generator, self.store, sleep=sleep)

    def plan(self, request):
        plan = self.analyzer.plan(request)
        capped = cap_plan(plan.components, get_setting("max_components"))
        if len(capped) < plan.expected_count:
            plan = replace(plan, components=tuple(capped))
        return plan

    def start_session(self):
        """Allocate a session id and its (empty) directory."""
        session_id = new_session_id()
        self.store.create(session_id)
        log.info("Starting website generation for session %s", session_id)
        return session_id

    def generate(self, session_id, plan, request, on_component=None):
        return self.scheduler.run(session_id, plan, request, on_component=on_component)

    def run_full(self, request, on_component=None):
        """Plan and generate synchronously. Returns the GenerationSummary."""
        plan = self.plan(request)
        session_id = self.start_session()
        return self.generate(session_id, plan, request, on_component=on_component)

    def patch(self, message, request, session_id=None, known_components=None, current_files=None):
        """Apply a chat instruction; persist the result when session_id is given.

        current_files: {component_id: ComponentArtifact}. When omitted and a
        session is given, the persisted files are used.
        """
        if current_files is None:
            current_files = self.store.read_all(session_id) if session_id else {}
        if known_components is None:
            known_components = list(current_files)

        reply = self.chat.patch(message, known_components, current_files, request)
        if session_id and reply.updated_code:
            artifact = ComponentArtifact.from_files(reply.component_target, reply.updated_code)
            try:
                self.store.write(session_id, reply.component_target, artifact)
            except StorageError as e:
                log.error("Failed to save chat update for %s: %s", reply.component_target, e)
                reply.content += (
                    "\n\nThe change could not be saved yet. Use Save in Edit Mode to keep it."
                )
        return reply
