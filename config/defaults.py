"""Default pipeline settings."""

import os

DEFAULTS = {
    "model": "claude-sonnet-4-5-20250929",
    "max_tokens": 8192,
    "request_timeout": 30,          # seconds per model call
    "generation_attempts": 3,       # total tries per component before fallback
    "chat_attempts": 3,
    "retry_base_delay": 2,          # seconds, multiplied by attempt number
    "overload_delay": 15,           # seconds to wait after an overload signal
    "inter_call_delay": 6,          # rate-limit spacing between components
    "max_components": 5,
    "chat_confidence_threshold": 0.5,
    "storage_root": os.path.join(os.path.dirname(os.path.dirname(__file__)), "generated"),
    "poll_base_interval": 3.0,
    "poll_backoff_step": 2.0,
    "poll_max_interval": 15.0,
    "poll_min_polls": 10,
    "poll_min_ratio": 0.6,
    "poll_max_polls": 20,
    "poll_max_failures": 3,
    "poll_read_timeout": 10.0,
    "server_url": "http://localhost:5001",
}

_ENV_PREFIX = "SITEBUILDER_"


def get_setting(key):
    """Return DEFAULTS[key], overridden by SITEBUILDER_<KEY> when set.

    The environment value is coerced to the type of the default.
    """
    default = DEFAULTS[key]
    raw = os.environ.get(_ENV_PREFIX + key.upper())
    if raw is None:
        return default
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw
