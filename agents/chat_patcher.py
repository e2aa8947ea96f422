"""Chat patcher: edits one existing component from a free-text instruction."""

import logging

from agents.base import BaseAgent
from agents.generator import describe, normalize_component
from config.defaults import get_setting
from core.state import CHANGE_TYPES, ChatReply, ComponentArtifact, MessageAnalysis
from manager.classifier import classify
from utils.llm import LLMError

log = logging.getLogger(__name__)

CLARIFY_EXAMPLES = (
    '"Change the hero section title"',
    '"Update the header navigation"',
    '"Make the footer background dark"',
)


def _validate_analysis(parsed):
    if "componentTarget" not in parsed:
        return "missing componentTarget"
    try:
        float(parsed.get("confidence", 0))
    except (TypeError, ValueError):
        return "confidence is not a number"
    return None


def _to_analysis(parsed, message, known_components):
    target = parsed.get("componentTarget")
    if not isinstance(target, str) or target not in known_components:
        target = None
    change_type = parsed.get("changeType")
    if change_type not in CHANGE_TYPES:
        change_type = "content"
    changes = parsed.get("specificChanges")
    if not isinstance(changes, list) or not changes:
        changes = [message.strip()]
    return MessageAnalysis(
        component_target=target,
        change_type=change_type,
        specific_changes=[str(c) for c in changes],
        confidence=max(0.0, min(1.0, float(parsed.get("confidence", 0)))),
    )


class ChatPatcher(BaseAgent):
    """Classifies a chat instruction, then regenerates the targeted component.

    Low-confidence or untargeted instructions get a clarification reply and
    no generation call. The caller persists `updated_code`.
    """

    name = "chat"

    def __init__(self, llm, attempts=None, threshold=None, **kwargs):
        super().__init__(llm, **kwargs)
        self.attempts = attempts or get_setting("chat_attempts")
        self.threshold = get_setting("chat_confidence_threshold") if threshold is None else threshold

    def analyze(self, message, known_components) -> MessageAnalysis:
        prompt = self.render_prompt(
            "classify.txt",
            message=message,
            available=", ".join(known_components) or "none",
        )
        try:
            result = self.call_with_retry(prompt, self.attempts, validate=_validate_analysis)
        except LLMError as e:
            log.warning("[chat] Classification call failed (%s)", e)
            result = None
        except Exception:
            log.exception("[chat] Unexpected error during classification")
            result = None

        if result is not None and result.ok:
            analysis = _to_analysis(result.value, message, known_components)
            log.info("[chat] Model classification: %s", analysis)
            return analysis

        log.info("[chat] Using fallback keyword analysis")
        return classify(message, known_components)

    def rewrite(self, analysis, current, request):
        """One focused generation call; returns None when no usable code came back."""
        component_id = analysis.component_target
        prompt = self.render_prompt(
            "patch.txt",
            component_id=component_id,
            change_type=analysis.change_type,
            changes=", ".join(analysis.specific_changes),
            markup=current.markup,
            style=current.style,
            behavior=current.behavior,
            website_type=request.website_type or "website",
            business_description=request.business_description,
        )

        def _validate(parsed):
            if normalize_component(parsed, component_id) is None:
                return f"no markup for {component_id}"
            return None

        try:
            result = self.call_with_retry(prompt, self.attempts, validate=_validate)
        except LLMError as e:
            log.error("[chat] Rewrite of %s failed: %s", component_id, e)
            return None
        except Exception:
            log.exception("[chat] Unexpected error rewriting %s", component_id)
            return None
        if not result.ok:
            log.warning("[chat] Rewrite of %s gave no usable code (%s)", component_id, result.reason)
            return None

        files = normalize_component(result.value, component_id)
        return ComponentArtifact.from_files(
            component_id, files, description=describe(result.value) or current.description,
        )

    def clarification(self, known_components):
        listed = ", ".join(known_components) if known_components else "none yet"
        examples = "\n".join(f"- {e}" for e in CLARIFY_EXAMPLES)
        return ChatReply(
            content=(
                f"I can help you modify these available components: {listed}\n\n"
                f"Please specify which component you'd like to change. For example:\n{examples}"
            ),
        )

    def patch(self, message, known_components, current_files, request) -> ChatReply:
        """Apply a chat instruction to one component.

        Args:
            message: The user's instruction.
            known_components: Component ids already generated.
            current_files: {component_id: ComponentArtifact} as the client sees them.
            request: The GenerationRequest giving website context.
        """
        known_components = list(known_components)
        if not message.strip():
            return self.clarification(known_components)

        analysis = self.analyze(message, known_components)
        if not analysis.component_target or analysis.confidence < self.threshold:
            return self.clarification(known_components)

        target = analysis.component_target
        current = current_files.get(target) or ComponentArtifact(component_id=target, markup="")
        updated = self.rewrite(analysis, current, request)
        if updated is None:
            return ChatReply(
                content=(
                    f"I couldn't update the {target.replace('-', ' ')} component right now. "
                    "Please try again, or use Edit Mode to change it directly."
                ),
                component_target=target,
                change_type=analysis.change_type,
            )

        changes = "\n".join(f"- {c}" for c in analysis.specific_changes)
        return ChatReply(
            content=(
                f"I've updated the {target.replace('-', ' ')} component!\n\n"
                f"Changes made:\n{changes}\n\n"
                "The changes should now be visible in your preview. "
                "Would you like me to make any other adjustments?"
            ),
            component_target=target,
            change_type=analysis.change_type,
            updated_code=updated.files(),
        )
