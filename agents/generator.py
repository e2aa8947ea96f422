"""Generator agent: produces one website component per call."""

import logging

from agents.base import BaseAgent
from agents.fallbacks import fallback_artifact
from config.components import (
    DEFAULT_CALL_TO_ACTION, DEFAULT_INDUSTRY, DEFAULT_MESSAGING, DEFAULT_PERSONALITY, DEFAULT_TONE,
    GENERIC_GUIDELINE, GOAL_CALLS_TO_ACTION, GUIDELINES, INDUSTRIES, MESSAGING, PERSONALITIES, TONES,
)
from config.defaults import get_setting
from core.state import ComponentArtifact, FIELD_EXTENSIONS
from utils.llm import LLMError

log = logging.getLogger(__name__)

# Keys the model may use for each artifact field besides "<id>.<ext>".
_BARE_KEYS = {
    "markup": ("html", "markup"),
    "style": ("css", "style"),
    "behavior": ("js", "javascript", "behavior"),
}


def guideline_for(component_id):
    return GUIDELINES.get(component_id, GENERIC_GUIDELINE)


def personality_for(description):
    """Pick a tone for the copy from keywords in the business description."""
    lower = (description or "").lower()
    for keywords, personality in PERSONALITIES:
        if any(kw in lower for kw in keywords):
            return personality
    return DEFAULT_PERSONALITY


def business_context(request):
    """Audience, goals, tone and calls to action for the request's website type.

    Unknown types get the generic services context. Key sections are the
    industry's usual sections followed by the features the user picked.
    """
    kind = (request.website_type or "").strip().lower()
    industry = INDUSTRIES.get(kind, INDUSTRIES[DEFAULT_INDUSTRY])
    features = sorted(request.selected_features)
    calls = [GOAL_CALLS_TO_ACTION.get(goal, DEFAULT_CALL_TO_ACTION) for goal in industry["goals"]]
    return {
        "audience": industry["audience"],
        "goals": list(industry["goals"]),
        "key_sections": list(industry["key_sections"]) + features,
        "features": features,
        "tone": TONES.get(kind, DEFAULT_TONE),
        "messaging": list(MESSAGING.get(kind, DEFAULT_MESSAGING)),
        "calls_to_action": list(dict.fromkeys(calls)),
    }


def normalize_component(parsed, component_id):
    """Map a parsed model object onto {"<id>.html", "<id>.css", "<id>.js"}.

    Qualified keys win over bare ones. Returns None when there is no markup.
    """
    files = {}
    for attr, ext in FIELD_EXTENSIONS:
        value = parsed.get(f"{component_id}.{ext}")
        if value is None:
            for key in _BARE_KEYS[attr]:
                if parsed.get(key) is not None:
                    value = parsed[key]
                    break
        files[f"{component_id}.{ext}"] = value if isinstance(value, str) else ""

    if not files[f"{component_id}.html"].strip():
        return None
    return files


def describe(parsed):
    description = parsed.get("description")
    if not description and isinstance(parsed.get("metadata"), dict):
        description = parsed["metadata"].get("description")
    return description if isinstance(description, str) else ""


class ComponentGenerator(BaseAgent):
    """Generates a component artifact; falls back to the static library.

    `generate` never raises for model-side failures: after the retry budget is
    spent (or on a non-transient API error) it returns the fallback artifact.
    """

    name = "generator"

    def __init__(self, llm, attempts=None, **kwargs):
        super().__init__(llm, **kwargs)
        self.attempts = attempts or get_setting("generation_attempts")

    def build_prompt(self, component_id, request):
        context = business_context(request)
        return self.render_prompt(
            "component.txt",
            component_id=component_id,
            website_type=request.website_type or "business",
            business_description=request.business_description,
            color_scheme=request.color_scheme,
            personality=personality_for(request.business_description),
            guideline=guideline_for(component_id),
            audience=context["audience"],
            goals=", ".join(context["goals"]),
            key_sections=", ".join(context["key_sections"]),
            features=", ".join(context["features"]) or "none specified",
            tone=context["tone"],
            messaging=", ".join(context["messaging"]),
            calls_to_action=", ".join(context["calls_to_action"]),
        )

    def generate(self, component_id, request) -> ComponentArtifact:
        prompt = self.build_prompt(component_id, request)

        def _validate(parsed):
            if normalize_component(parsed, component_id) is None:
                return f"no markup for {component_id}"
            return None

        try:
            result = self.call_with_retry(prompt, self.attempts, validate=_validate)
        except LLMError as e:
            log.error("[generator] %s: non-retryable model error: %s", component_id, e)
            return fallback_artifact(component_id, request)
        except Exception:
            log.exception("[generator] %s: unexpected error from model client, using fallback", component_id)
            return fallback_artifact(component_id, request)

        if not result.ok:
            log.warning("[generator] %s: giving up after %d attempts (%s), using fallback",
                        component_id, self.attempts, result.reason)
            return fallback_artifact(component_id, request)

        files = normalize_component(result.value, component_id)
        log.info("[generator] %s generated", component_id)
        return ComponentArtifact.from_files(component_id, files, description=describe(result.value))
