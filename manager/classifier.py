"""Keyword-scoring chat instruction classifier (used when the model path fails)."""

import re

from core.state import MessageAnalysis

TARGET_CONFIDENCE = 0.8
NO_TARGET_CONFIDENCE = 0.4

# Other words people use for a component. Checked only after exact names.
ALIASES = {
    "header": ("navigation", "navbar", "nav bar", "menu", "logo"),
    "hero": ("banner", "landing", "headline"),
    "footer": ("copyright", "bottom of the page"),
    "about-us": ("about", "our story"),
    "contact-form": ("contact", "form"),
    "testimonials": ("reviews", "quotes"),
    "pricing": ("prices", "plans"),
    "gallery": ("photos", "images", "pictures"),
}

# Change types in tie-break priority order.
KEYWORDS = {
    "style": {
        "color": 3, "colour": 3, "style": 3, "background": 3, "font": 2,
        "blue": 2, "red": 2, "green": 2, "black": 2, "white": 2, "dark": 2,
        "light": 1, "bigger": 1, "smaller": 1, "bold": 1, "shadow": 2,
    },
    "content": {
        "text": 3, "title": 3, "heading": 3, "headline": 2, "copy": 2,
        "wording": 2, "rename": 2, "say": 1, "description": 2, "phone": 1,
    },
    "structure": {
        "layout": 3, "column": 2, "columns": 2, "reorder": 3, "move": 2,
        "add": 1, "remove": 1, "grid": 2,
    },
    "functionality": {
        "click": 2, "animation": 2, "animate": 2, "submit": 2, "validate": 3,
        "validation": 3, "script": 2, "toggle": 2, "scroll": 2,
    },
}


def _mentions(text, phrase):
    return re.search(r"\b" + re.escape(phrase) + r"\b", text) is not None


def find_target(message, known_components):
    """Return the first known component named in the message, or None."""
    text = message.lower()
    for component in known_components:
        if _mentions(text, component) or _mentions(text, component.replace("-", " ")):
            return component
    for component in known_components:
        for alias in ALIASES.get(component, ()):
            if _mentions(text, alias):
                return component
    return None


def classify_change(message):
    """Score the message against each change type. Returns (change_type, scores)."""
    text = message.lower()
    scores = {}
    for change_type, kw_map in KEYWORDS.items():
        scores[change_type] = sum(
            weight for keyword, weight in kw_map.items() if _mentions(text, keyword)
        )

    # max() keeps the first key on ties, so dict order is the priority.
    best = max(scores, key=scores.get)
    if scores[best] == 0:
        best = "content"
    return best, scores


def classify(message, known_components):
    """Keyword fallback for chat instructions.

    Returns a MessageAnalysis whose confidence is 0.8 when a known component
    was identified and 0.4 otherwise.
    """
    target = find_target(message, known_components)
    change_type, _ = classify_change(message)
    return MessageAnalysis(
        component_target=target,
        change_type=change_type,
        specific_changes=[message.strip()],
        confidence=TARGET_CONFIDENCE if target else NO_TARGET_CONFIDENCE,
    )
