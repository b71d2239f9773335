"""
Writing generated files that contain secrets.

Output is written to a 0600 temp file in the destination directory and then
renamed over the destination, so the final path only ever holds a complete
file readable by its owner alone.
"""

from __future__ import annotations

import logging
import os
import stat
import subprocess
import tempfile
from pathlib import Path

from lkr.errors import TemplateError

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIXES = (".example", ".template")


def write_secure(path: Path | str, content: str) -> None:
    """Atomically write content to path with owner-only (0600) permissions."""
    path = Path(path)
    parent = path.parent

    try:
        fd, tmp_name = tempfile.mkstemp(prefix=".lkr-gen-", suffix=".tmp", dir=parent)
    except OSError as e:
        raise TemplateError(f"Cannot write to '{parent}': {e}") from e

    tmp_path = Path(tmp_name)
    try:
        os.fchmod(fd, stat.S_IRUSR | stat.S_IWUSR)  # 600
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            fp.write(content)
            fp.flush()
            os.fsync(fp.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise TemplateError(f"Cannot write '{path}': {e}") from e

    logger.debug("Wrote %s (%d bytes, mode 600)", path, len(content))


def derive_output_path(template_path: Path | str) -> Path:
    """Derive the output path from a template name: `.env.example` -> `.env`."""
    template_path = Path(template_path)
    name = template_path.name
    for suffix in TEMPLATE_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return template_path.with_name(name[: -len(suffix)])
    raise TemplateError("Cannot derive output path. Use -o to specify output file.")


def check_gitignore(path: Path | str) -> bool | None:
    """Check whether path is covered by .gitignore (best-effort).

    Returns None outside a git repository or when git is unavailable,
    True if ignored, False if not.
    """
    path = Path(path).resolve()
    try:
        result = subprocess.run(
            ["git", "check-ignore", "-q", str(path)],
            cwd=path.parent,
            capture_output=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    # 128 = not a git repository
    if result.returncode == 128:
        return None
    return result.returncode == 0
