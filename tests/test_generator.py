"""Tests for agents.generator and agents.fallbacks."""

import json

import pytest

from agents.fallbacks import FALLBACK_COMPONENTS, business_name, fallback_artifact
from agents.generator import ComponentGenerator, business_context, normalize_component, personality_for
from core.state import GenerationRequest
from utils.llm import LLMError

REQUEST = GenerationRequest(
    business_description="Bella Cucina family Italian restaurant",
    website_type="Restaurant",
)


class FakeLLM:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    def complete(self, prompt, system=None):
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _generator(llm, sleeps=None):
    record = sleeps.append if sleeps is not None else (lambda s: None)
    return ComponentGenerator(llm, sleep=record)


def _hero_json(**extra):
    data = {"hero.html": "<section id=\"hero\"><h1>Hi</h1></section>", "hero.css": "#hero{}", "hero.js": ""}
    data.update(extra)
    return json.dumps(data)


def test_generate_success():
    llm = FakeLLM("Here it is:\n" + _hero_json(description="Big banner"))
    art = _generator(llm).generate("hero", REQUEST)
    assert not art.is_fallback
    assert art.component_id == "hero"
    assert "<h1>Hi</h1>" in art.markup
    assert art.description == "Big banner"
    assert "hero" in llm.prompts[0]
    assert "warm, inviting" in llm.prompts[0]


def test_three_failures_fall_back_to_fixed_hero():
    sleeps = []
    llm = FakeLLM(LLMError("timeout"), LLMError("timeout"), LLMError("timeout"))
    art = _generator(llm, sleeps).generate("hero", REQUEST)
    assert art.is_fallback
    assert art == fallback_artifact("hero", REQUEST)
    assert len(llm.prompts) == 3
    assert sleeps == [2, 4]


def test_malformed_output_is_retried():
    sleeps = []
    llm = FakeLLM("sorry, no json", _hero_json())
    art = _generator(llm, sleeps).generate("hero", REQUEST)
    assert not art.is_fallback
    assert sleeps == [2]


def test_overload_uses_long_delay():
    sleeps = []
    llm = FakeLLM(LLMError("Overloaded", overloaded=True), _hero_json())
    art = _generator(llm, sleeps).generate("hero", REQUEST)
    assert not art.is_fallback
    assert sleeps == [15]


def test_non_transient_error_falls_back_immediately():
    llm = FakeLLM(LLMError("invalid api key", transient=False))
    art = _generator(llm).generate("footer", REQUEST)
    assert art.is_fallback
    assert len(llm.prompts) == 1


def test_missing_markup_is_malformed():
    llm = FakeLLM('{"hero.css": "x{}"}', '{"hero.css": "x{}"}', '{"hero.css": "x{}"}')
    art = _generator(llm).generate("hero", REQUEST)
    assert art.is_fallback


def test_normalize_accepts_bare_keys():
    files = normalize_component({"html": "<p>", "css": "p{}", "javascript": "1"}, "about-us")
    assert files == {"about-us.html": "<p>", "about-us.css": "p{}", "about-us.js": "1"}


def test_normalize_qualified_keys_win():
    files = normalize_component({"hero.html": "<a>", "html": "<b>"}, "hero")
    assert files["hero.html"] == "<a>"


def test_normalize_empty_markup():
    assert normalize_component({"hero.html": "   "}, "hero") is None


def test_personality_default():
    assert personality_for("") == personality_for("something unrelated")


@pytest.mark.parametrize("component_id", FALLBACK_COMPONENTS + ("newsletter",))
def test_fallback_is_total(component_id):
    art = fallback_artifact(component_id, REQUEST)
    assert art.is_fallback
    assert art.component_id == component_id
    assert art.markup.strip()
    assert art.style.strip()
    assert art.behavior.strip()
    assert "$" not in art.markup


def test_fallback_unknown_component_uses_generic():
    art = fallback_artifact("newsletter")
    assert 'id="newsletter"' in art.markup
    assert "Newsletter" in art.markup


def test_fallback_escapes_business_name():
    req = GenerationRequest(business_description="<script>alert(1)</script> bakery")
    art = fallback_artifact("header", req)
    assert "<script>alert" not in art.markup


def test_business_name():
    assert business_name(REQUEST) == "Bella Cucina Family"
    assert business_name(GenerationRequest(business_description="", website_type="portfolio")) == "Portfolio"
    assert business_name(None) == "Your Website"


def test_raw_connection_errors_are_retried_then_fall_back():
    sleeps = []
    llm = FakeLLM(ConnectionResetError(104, "reset"), ConnectionResetError(104, "reset"),
                  ConnectionResetError(104, "reset"))
    art = _generator(llm, sleeps).generate("hero", REQUEST)
    assert art == fallback_artifact("hero", REQUEST)
    assert len(llm.prompts) == 3
    assert sleeps == [2, 4]


def test_unexpected_client_error_falls_back_without_retry():
    llm = FakeLLM(ValueError("unexpected payload"))
    art = _generator(llm).generate("footer", REQUEST)
    assert art == fallback_artifact("footer", REQUEST)
    assert len(llm.prompts) == 1


def test_business_context_for_restaurant():
    req = GenerationRequest(
        business_description="Bella Cucina",
        website_type="Restaurant",
        selected_features=frozenset({"gallery", "about"}),
    )
    context = business_context(req)
    assert context["audience"] == "Food lovers, families, local diners"
    assert context["tone"] == "warm, inviting, appetizing"
    assert context["calls_to_action"] == ["View Our Menu", "Get Started"]
    assert context["key_sections"] == ["Menu display", "Location info", "Reviews", "Contact", "about", "gallery"]
    assert context["features"] == ["about", "gallery"]


def test_business_context_unknown_type_uses_services():
    context = business_context(GenerationRequest(business_description="x", website_type="portfolio"))
    assert context["goals"] == ["Generate leads", "Establish expertise", "Convert visitors"]
    assert context["tone"] == "professional, engaging"
    assert context["messaging"] == ["Quality service", "Professional results"]
    assert context["features"] == []


def test_prompt_carries_business_context_and_features():
    req = GenerationRequest(
        business_description="City dental clinic",
        website_type="Healthcare",
        selected_features=frozenset({"contact", "testimonials"}),
    )
    llm = FakeLLM(_hero_json())
    _generator(llm).generate("hero", req)
    prompt = llm.prompts[0]
    assert "Patients, caregivers, medical seekers" in prompt
    assert "Book Appointment" in prompt
    assert "caring, professional, reassuring" in prompt
    assert "Features the owner asked for: contact, testimonials" in prompt
    assert "$" not in prompt
