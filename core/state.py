"""Pipeline state models shared across all stages."""

from __future__ import annotations

from dataclasses import dataclass, field

COLOR_SCHEMES = ("light", "dark")
CHANGE_TYPES = ("style", "content", "structure", "functionality")

# On-disk / wire extension for each artifact field.
FIELD_EXTENSIONS = (("markup", "html"), ("style", "css"), ("behavior", "js"))


@dataclass(frozen=True)
class GenerationRequest:
    business_description: str
    website_type: str = ""
    selected_features: frozenset = frozenset()
    color_scheme: str = "light"

    @classmethod
    def from_payload(cls, payload):
        """Build a request from the onboarding JSON (camelCase keys)."""
        payload = payload or {}
        scheme = str(payload.get("colorScheme") or "light").lower()
        if scheme not in COLOR_SCHEMES:
            scheme = "light"
        features = payload.get("selectedFeatures") or []
        return cls(
            business_description=str(payload.get("businessDescription") or "").strip(),
            website_type=str(payload.get("websiteType") or "").strip(),
            selected_features=frozenset(str(f).strip().lower() for f in features if str(f).strip()),
            color_scheme=scheme,
        )

    def to_payload(self):
        return {
            "businessDescription": self.business_description,
            "websiteType": self.website_type,
            "selectedFeatures": sorted(self.selected_features),
            "colorScheme": self.color_scheme,
        }


@dataclass(frozen=True)
class ComponentPlan:
    components: tuple
    reasoning: str = ""
    source: str = "model"       # "model" | "fallback"

    @property
    def expected_count(self):
        return len(self.components)

    def to_dict(self):
        return {
            "components": list(self.components),
            "reasoning": self.reasoning,
            "expectedCount": self.expected_count,
        }


@dataclass
class ComponentArtifact:
    component_id: str
    markup: str
    style: str = ""
    behavior: str = ""
    description: str = ""
    is_fallback: bool = False

    def files(self):
        """Return {"<id>.html": markup, "<id>.css": style, "<id>.js": behavior}."""
        return {
            f"{self.component_id}.{ext}": getattr(self, attr)
            for attr, ext in FIELD_EXTENSIONS
        }

    @classmethod
    def from_files(cls, component_id, files, description=""):
        """Inverse of files(); bare "html"/"css"/"js" keys are accepted too.

        Raises ValueError when a file body is present but not a string.
        """
        values = {}
        for attr, ext in FIELD_EXTENSIONS:
            value = files.get(f"{component_id}.{ext}")
            if value is None:
                value = files.get(ext, "")
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{component_id}.{ext} must be a string, got {type(value).__name__}")
            values[attr] = value or ""
        return cls(component_id=component_id, description=description, **values)


@dataclass(frozen=True)
class Extraction:
    """Result of pulling a JSON object out of free-form model text."""

    OK = "ok"
    MALFORMED = "malformed"
    EMPTY = "empty"

    kind: str
    value: object = None
    reason: str = ""

    @property
    def ok(self):
        return self.kind == Extraction.OK

    @classmethod
    def success(cls, value):
        return cls(cls.OK, value=value)

    @classmethod
    def malformed(cls, reason):
        return cls(cls.MALFORMED, reason=reason)

    @classmethod
    def empty(cls):
        return cls(cls.EMPTY, reason="empty response")


@dataclass
class GenerationSummary:
    session_id: str
    plan: ComponentPlan
    generated: list[str] = field(default_factory=list)
    fallbacks: list[str] = field(default_factory=list)
    save_failures: dict[str, str] = field(default_factory=dict)
    status: str = "running"     # running|done|failed

    def to_dict(self):
        return {
            "userId": self.session_id,
            "expectedCount": self.plan.expected_count,
            "components": list(self.plan.components),
            "generated": list(self.generated),
            "fallbacks": list(self.fallbacks),
            "saveFailures": dict(self.save_failures),
            "status": self.status,
        }


@dataclass
class MessageAnalysis:
    component_target: str | None
    change_type: str = "content"
    specific_changes: list[str] = field(default_factory=list)
    confidence: float = 0.0


@dataclass
class ChatReply:
    content: str
    component_target: str | None = None
    change_type: str | None = None
    updated_code: dict | None = None

    def to_dict(self):
        return {
            "content": self.content,
            "componentTarget": self.component_target,
            "changeType": self.change_type,
            "updatedCode": self.updated_code,
        }


@dataclass
class PollState:
    target_count: int
    attempts: int = 0
    consecutive_failures: int = 0
    known_components: set[str] = field(default_factory=set)
