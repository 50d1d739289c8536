"""Artifact path resolution and guarded cleanup for render outputs."""

import logging
import os
from typing import Optional

from wendy.config import settings

logger = logging.getLogger(__name__)

TEMPLATE_EXT = ".json"
LOSSLESS_EXT = ".aiff"
COMPRESSED_EXT = ".mp3"


class ArtifactStore:
    """Knows where render artifacts live and how to remove temporary ones.

    Deletion is refused for any path without the expected extension, so a
    path-construction bug cannot remove an unrelated file.
    """

    def __init__(
        self,
        out_dir: Optional[str] = None,
        tmp_dir: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        self.out_dir = os.path.abspath(out_dir or settings.out_dir)
        self.tmp_dir = os.path.abspath(tmp_dir or settings.tmp_dir)
        self.public_base_url = (public_base_url or settings.wendy_url).rstrip("/")

    def ensure_dirs(self) -> None:
        os.makedirs(self.out_dir, exist_ok=True)
        os.makedirs(self.tmp_dir, exist_ok=True)

    def hires_path(self, name: str) -> str:
        """Absolute path of the lossless render for a task name."""
        return os.path.join(self.out_dir, name + LOSSLESS_EXT)

    def compressed_path(self, hires_path: str) -> str:
        root, _ = os.path.splitext(hires_path)
        return root + COMPRESSED_EXT

    def public_url(self, uri: str) -> str:
        return f"{self.public_base_url}/{uri.lstrip('/')}"

    def recording_path(self, filename: str) -> Optional[str]:
        """Path of a published recording in out_dir, or None if there is no such file."""
        path = os.path.abspath(os.path.join(self.out_dir, filename))
        if os.path.dirname(path) != self.out_dir or not os.path.isfile(path):
            return None
        return path

    def cleanup_template(self, path: str) -> bool:
        return self._remove(path, TEMPLATE_EXT)

    def cleanup_hires(self, path: str) -> bool:
        return self._remove(path, LOSSLESS_EXT)

    def _remove(self, path: str, expected_ext: str) -> bool:
        """Best-effort delete. Never raises; returns True if a file was removed."""
        if not path or not path.endswith(expected_ext):
            logger.error(
                "Refusing to delete %r: expected a %s file", path, expected_ext
            )
            return False
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning("Nothing to remove at %s", path)
            return False
        except OSError as exc:
            logger.error("Error attempting to remove %s: %s", path, exc)
            return False
        logger.debug("Removed %s", path)
        return True
