from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from string import Template
from typing import Mapping

from .errors import TemplateError
from .templates import TEMPLATES

logger = logging.getLogger(__name__)


def render(template_id: str, bindings: Mapping[str, object]) -> str:
    """Render a named template. Every placeholder must be bound."""
    try:
        source = TEMPLATES[template_id]
    except KeyError:
        raise TemplateError(f"Unknown template: {template_id}") from None
    try:
        return Template(source).substitute({k: str(v) for k, v in bindings.items()})
    except KeyError as e:
        raise TemplateError(f"Template {template_id} is missing binding {e.args[0]!r}") from e
    except ValueError as e:
        raise TemplateError(f"Template {template_id} is malformed: {e}") from e


def is_installed(path: str | Path, text: str) -> bool:
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8") == text
    except FileNotFoundError:
        return False


def install(path: str | Path, text: str, *, mode: int = 0o644, dry_run: bool = False) -> bool:
    """Atomically replace ``path`` with ``text``.

    The new content goes to a temp file in the same directory and is renamed
    over the target, so readers see either the old file or the new one.
    Whatever was at ``path`` before is discarded. Returns True if the content
    changed.
    """
    p = Path(path)
    changed = not is_installed(p, text)

    if dry_run:
        logger.info("Would write %s (changed=%s)", p, changed)
        return changed

    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, mode)
        os.replace(tmp, p)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise

    logger.info("Wrote %s (changed=%s)", p, changed)
    return changed
