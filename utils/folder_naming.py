"""Session ids and safe on-disk paths for generated components."""

import os
import re
import secrets
import string
import time

_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def new_session_id():
    """Return an opaque id unique per invocation, e.g. user_1718000000000_k3j9x0q2a."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"user_{millis}_{suffix}"


def validate_id(value, kind="id"):
    """Return value if it is a safe single path segment, else raise ValueError."""
    if not isinstance(value, str) or not _ID_RE.match(value):
        raise ValueError(f"Invalid {kind}: {value!r}")
    return value


def check_containment(base_dir, path):
    """Verify the resolved path stays within base_dir."""
    resolved = os.path.realpath(path)
    if not resolved.startswith(os.path.realpath(base_dir) + os.sep):
        raise ValueError(f"Path escapes storage directory: {path}")
    return resolved


def session_dir(root, session_id):
    """Absolute directory for a session under root."""
    validate_id(session_id, "session id")
    return check_containment(root, os.path.join(root, session_id))
