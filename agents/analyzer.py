"""Analyzer agent: decides which components a website needs."""

import logging

from agents.base import BaseAgent
from config.components import (
    COMPONENTS, FEATURE_TO_COMPONENT, RENDER_ORDER, REQUIRED_COMPONENTS,
)
from config.defaults import get_setting
from core.state import ComponentPlan
from utils.llm import LLMError

log = logging.getLogger(__name__)

# (keywords in website type / description, component added by the fallback)
FALLBACK_RULES = [
    (("restaurant", "food"), "about-us"),
    (("business", "service"), "services"),
]


def sections_from_features(selected_features):
    """Map onboarding feature names to component ids, dropping unknown ones."""
    mapped = []
    for feature in sorted(selected_features):
        component = FEATURE_TO_COMPONENT.get(feature, feature)
        if component in COMPONENTS and component not in mapped:
            mapped.append(component)
    return mapped


def render_order(components):
    """Sort component ids into top-to-bottom page order; unknown ids go before footer."""
    known = [c for c in RENDER_ORDER if c in components]
    extra = [c for c in components if c not in RENDER_ORDER]
    if "footer" in known:
        known.remove("footer")
        return known + extra + ["footer"]
    return known + extra


def enforce_required(components):
    """Dedupe and guarantee header, hero first and footer present."""
    result = []
    for c in components:
        if c not in result:
            result.append(c)
    if "header" not in result:
        result.insert(0, "header")
    if "hero" not in result:
        result.insert(1, "hero")
    if "footer" not in result:
        result.append("footer")
    return result


def _validate(parsed):
    components = parsed.get("components")
    if not isinstance(components, list) or not all(isinstance(c, str) for c in components):
        return "'components' must be a list of strings"
    return None


class RequirementAnalyzer(BaseAgent):
    """Produces a ComponentPlan from a GenerationRequest."""

    name = "analyzer"

    def __init__(self, llm, attempts=1, **kwargs):
        super().__init__(llm, **kwargs)
        self.attempts = attempts

    def build_prompt(self, request):
        features = sections_from_features(request.selected_features)
        available = "\n".join(f"- {cid}: {desc}" for cid, desc in COMPONENTS.items())
        return self.render_prompt(
            "analyzer.txt",
            business_description=request.business_description,
            website_type=request.website_type or "not specified",
            features=", ".join(features) or "none specified",
            available=available,
        )

    def plan(self, request) -> ComponentPlan:
        try:
            result = self.call_with_retry(self.build_prompt(request), self.attempts, validate=_validate)
        except LLMError as e:
            log.warning("[analyzer] Model call failed (%s), using keyword fallback", e)
            return self.fallback_plan(request)
        except Exception:
            log.exception("[analyzer] Unexpected error from model client, using keyword fallback")
            return self.fallback_plan(request)

        if not result.ok:
            log.warning("[analyzer] Could not parse analysis (%s), using keyword fallback", result.reason)
            return self.fallback_plan(request)

        chosen = [c.strip().lower() for c in result.value["components"]]
        unknown = [c for c in chosen if c not in COMPONENTS]
        if unknown:
            log.info("[analyzer] Dropping unknown components: %s", ", ".join(unknown))
        components = enforce_required([c for c in chosen if c in COMPONENTS])
        reasoning = result.value.get("reasoning")
        plan = ComponentPlan(
            components=tuple(components),
            reasoning=reasoning if isinstance(reasoning, str) else "",
            source="model",
        )
        log.info("[analyzer] Selected components: %s", ", ".join(plan.components))
        return plan

    def fallback_plan(self, request) -> ComponentPlan:
        """Deterministic keyword selection, no model involved."""
        website_type = request.website_type.lower()
        description = request.business_description.lower()
        components = list(REQUIRED_COMPONENTS)

        for keywords, component in FALLBACK_RULES:
            if any(kw in website_type for kw in keywords):
                components.append(component)
                break
        else:
            for keywords, component in FALLBACK_RULES:
                if any(kw in description for kw in keywords):
                    components.append(component)
                    break

        max_components = get_setting("max_components")
        for component in sections_from_features(request.selected_features):
            if len(components) >= max_components:
                break
            if component not in components:
                components.append(component)

        components = enforce_required(components)
        return ComponentPlan(
            components=tuple(components),
            reasoning=f"Fallback selection for {request.website_type or 'generic'} website",
            source="fallback",
        )
