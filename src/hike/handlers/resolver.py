"""
=============================================================================
PATH RESOLVER
=============================================================================

Maps a decoded URL path onto a file under the document root.

=============================================================================
RESOLUTION RULES
=============================================================================

    URL path            candidate (root = /srv/www, index = index.html)
    ────────            ──────────────────────────────────────────────
    /                   /srv/www/index.html
    /docs/              /srv/www/docs/index.html
    /docs               /srv/www/docs/index.html   (docs is a directory)
    /a.css              /srv/www/a.css
    /LICENSE            /srv/www/LICENSE           (no extension is fine)

    1. Trailing "/"          → append the index file
    2. Names a directory     → append "/" + the index file
    3. Anything else         → used as is
    4. Canonicalize (follow "..", follow symlinks)
    5. Outside the root, missing, not a regular file, unreadable → None

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../../etc/passwd HTTP/1.1
    GET /%2e%2e/%2e%2e/etc/passwd HTTP/1.1     (decoded by the parser first)

    (root / "../../etc/passwd").resolve()  →  /etc/passwd
    /etc/passwd.relative_to(/srv/www)      →  ValueError  →  None  →  404

An escape is reported exactly like a missing file, so a client cannot
learn which files exist outside the root.

=============================================================================
"""

import logging
import os
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


DEFAULT_INDEX_FILE = "index.html"


class PathResolver:
    """
    Resolve request paths against one document root.

    Usage:
        resolver = PathResolver("./public")
        resolver.resolve("/")            # Path('/abs/public/index.html')
        resolver.resolve("/missing")     # None
    """

    def __init__(self, root_dir: str | Path, index_file: str = DEFAULT_INDEX_FILE):
        """
        Args:
            root_dir: Directory to serve. Canonicalized once, here.
            index_file: File served for directory requests.
        """
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file

        if not self.root_dir.is_dir():
            raise ValueError(f"Root directory does not exist: {root_dir}")

    def resolve(self, request_path: str) -> Optional[Path]:
        """
        Resolve a decoded request path to a readable file.

        Args:
            request_path: Percent-decoded URL path, query already removed.

        Returns:
            Absolute path of the file to serve, or None for NotFound.
        """
        relative = request_path.lstrip("/")
        candidate = self.root_dir / relative

        try:
            if request_path.endswith("/") or candidate.is_dir():
                candidate = candidate / self.index_file
            full_path = candidate.resolve()
        except (OSError, RuntimeError) as e:
            # RuntimeError: symlink loop on older interpreters
            logger.debug(f"Cannot canonicalize {candidate}: {e}")
            return None

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {request_path}")
            return None

        try:
            if not full_path.is_file():
                return None
        except OSError:
            return None

        if not os.access(full_path, os.R_OK):
            logger.debug(f"File not readable: {full_path}")
            return None

        return full_path


def resolve(
    request_path: str,
    root_dir: str | Path,
    index_file: str = DEFAULT_INDEX_FILE,
) -> Optional[Path]:
    """One-shot form of PathResolver(root_dir, index_file).resolve(request_path)."""
    return PathResolver(root_dir, index_file).resolve(request_path)
