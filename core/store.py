"""Per-session file storage for generated components."""

import io
import logging
import os
import tempfile
import threading
import zipfile

from config.defaults import get_setting
from core.state import ComponentArtifact, FIELD_EXTENSIONS
from utils.folder_naming import check_containment, session_dir, validate_id

log = logging.getLogger(__name__)

_EXTENSIONS = tuple(ext for _, ext in FIELD_EXTENSIONS)
# html goes last: a component is visible to readers once its .html exists.
_WRITE_ORDER = ("js", "css", "html")


class StorageError(Exception):
    """A component could not be written to disk."""


class PersistenceStore:
    """Stores artifacts as <root>/<session_id>/<component_id>.<html|css|js>.

    One writer per session (the generation loop or a chat patch), any number
    of readers. Each file is replaced atomically, and a component's three
    replacements happen under the store lock that readers also take, so a
    reader sees either the whole old triple or the whole new one.
    """

    def __init__(self, root=None):
        self.root = os.path.abspath(root or get_setting("storage_root"))
        self._lock = threading.RLock()

    def path_for(self, session_id):
        return session_dir(self.root, session_id)

    def exists(self, session_id):
        return os.path.isdir(self.path_for(session_id))

    def create(self, session_id):
        """Create the session directory. No-op if it already exists."""
        path = self.path_for(session_id)
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create folder for {session_id}: {e}") from e
        return path

    def write(self, session_id, component_id, artifact):
        """Write all three files of artifact under component_id. Last write wins.

        Returns the list of file names written.

        Raises:
            StorageError: if the directory or any file could not be written.
            ValueError: for unsafe session or component ids.
        """
        validate_id(component_id, "component id")
        path = self.create(session_id)
        if artifact.component_id != component_id:
            artifact = ComponentArtifact(
                component_id=component_id,
                markup=artifact.markup,
                style=artifact.style,
                behavior=artifact.behavior,
                description=artifact.description,
                is_fallback=artifact.is_fallback,
            )

        files = artifact.files()
        written = []
        with self._lock:
            for ext in _WRITE_ORDER:
                name = f"{component_id}.{ext}"
                self._write_file(path, name, files[name])
                written.append(name)
        log.info("Saved %s for session %s", component_id, session_id)
        return written

    def _write_file(self, directory, name, content):
        target = check_containment(directory, os.path.join(directory, name))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=f"-{name}")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content or "")
            os.replace(tmp_path, target)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to save {name}: {e}") from e

    def read_all(self, session_id):
        """Return {component_id: ComponentArtifact} for everything written so far.

        Missing session -> {}. Files that cannot be read are skipped.
        """
        path = self.path_for(session_id)
        with self._lock:
            if not os.path.isdir(path):
                return {}

            try:
                items = sorted(os.listdir(path))
            except OSError as e:
                log.error("Error reading %s: %s", path, e)
                return {}

            grouped = {}
            for item in items:
                if item.startswith("."):
                    continue
                if item in _EXTENSIONS:
                    log.warning("Ignoring unqualified file %r in session %s", item, session_id)
                    continue
                component_id, _, ext = item.rpartition(".")
                if ext not in _EXTENSIONS or not component_id:
                    continue
                try:
                    validate_id(component_id, "component id")
                    with open(os.path.join(path, item), "r", encoding="utf-8") as f:
                        content = f.read()
                except (OSError, UnicodeDecodeError, ValueError) as e:
                    log.warning("Skipping %s in session %s: %s", item, session_id, e)
                    continue
                grouped.setdefault(component_id, {})[item] = content

        return {
            component_id: ComponentArtifact.from_files(component_id, files)
            for component_id, files in grouped.items()
            if f"{component_id}.html" in files
        }

    def read(self, session_id, component_id):
        return self.read_all(session_id).get(component_id)

    def archive(self, session_id):
        """Zip the session directory and return the archive bytes.

        Raises:
            FileNotFoundError: if the session has no directory.
        """
        path = self.path_for(session_id)
        if not os.path.isdir(path):
            raise FileNotFoundError(f"Website folder not found: {session_id}")

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for component_id, artifact in sorted(self.read_all(session_id).items()):
                for name, content in artifact.files().items():
                    zf.writestr(name, content)
        return buffer.getvalue()
