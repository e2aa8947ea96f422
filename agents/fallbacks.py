"""Static fallback components rendered from templates/fallbacks/."""

import datetime
import html
import re
from urllib.parse import quote_plus

from config.components import COMPONENTS
from core.state import ComponentArtifact, FIELD_EXTENSIONS
from utils.template_engine import render_template, template_exists

CATEGORY = "fallbacks"

# Every known component has a hand-written triple; anything else uses generic.*
FALLBACK_COMPONENTS = tuple(COMPONENTS)

_SAFE_ID = re.compile(r"[a-z0-9][a-z0-9-]*")

_LEADING_PHRASES = ("we are a ", "we are an ", "we are ", "a ", "an ", "the ", "my ", "our ")


def business_name(request):
    """Derive a short display name from the business description."""
    text = (request.business_description if request else "").strip()
    lowered = text.lower()
    for prefix in _LEADING_PHRASES:
        if lowered.startswith(prefix):
            text = text[len(prefix):]
            break
    words = re.sub(r"[^\w\s&'-]", " ", text).split()
    if words:
        return " ".join(words[:3]).title()
    if request and request.website_type:
        return request.website_type.title()
    return "Your Website"


def _variables(component_id, request):
    name = business_name(request)
    website_type = (request.website_type if request else "") or "business"
    return {
        "business_name": html.escape(name),
        "business_name_url": quote_plus(name),
        "website_type_lower": html.escape(website_type.lower()),
        "email_slug": re.sub(r"[^a-z0-9]", "", name.lower()) or "yourwebsite",
        "component_id": component_id,
        "component_title": html.escape(component_id.replace("-", " ").title()),
        "year": str(datetime.date.today().year),
    }


def fallback_artifact(component_id, request=None):
    """Return the complete pre-authored artifact for component_id.

    Always returns non-empty markup, style and behavior.
    """
    template = "generic"
    if _SAFE_ID.fullmatch(component_id) and template_exists(CATEGORY, f"{component_id}.html"):
        template = component_id
    variables = _variables(component_id, request)
    fields = {
        attr: render_template(CATEGORY, f"{template}.{ext}", variables).strip()
        for attr, ext in FIELD_EXTENSIONS
    }
    return ComponentArtifact(
        component_id=component_id,
        description=COMPONENTS.get(component_id, f"{component_id} section"),
        is_fallback=True,
        **fields,
    )
