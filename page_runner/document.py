"""Assembles test fragments into one static HTML document.

Rather than injecting or evaluating each script into an already loaded page
(which breaks as soon as tests use iframes and friends), every fragment is
dumped as an inline <script> into a single document. The page parses them in
argument order inside one execution context.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import structlog


logger = structlog.get_logger(__name__)


SCRIPT_OPEN = "<script>//<![CDATA[\n"
SCRIPT_CLOSE = "\n//]]></script>"
DOCUMENT_SUFFIX = ".html"


@dataclass(frozen=True)
class Fragment:
    kind: str  # file|inline
    text: str
    path: str | None = None


def _looks_like_script_file(arg: str, script_extensions: Iterable[str]) -> bool:
    lowered = arg.lower()
    return any(lowered.endswith(ext.lower()) for ext in script_extensions)


def resolve_fragment(arg: str, script_extensions: Sequence[str] = (".js",)) -> Fragment:
    """Use the file's contents when `arg` names a file, else the text itself."""
    p = Path(arg)
    try:
        is_file = p.is_file()
    except (OSError, ValueError):
        # Literal expressions can be too long or contain NULs for a path lookup.
        is_file = False

    if is_file:
        try:
            text = p.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning(
                "Fragment file is not readable; including as script text",
                fragment=arg,
                error=str(exc),
            )
            return Fragment(kind="inline", text=arg)
        return Fragment(kind="file", text=text, path=arg)

    if _looks_like_script_file(arg, script_extensions):
        logger.warning(
            "Fragment looks like a filename, but file does not exist; including as script text",
            fragment=arg,
        )
    return Fragment(kind="inline", text=arg)


def resolve_fragments(args: Sequence[str], script_extensions: Sequence[str] = (".js",)) -> list[Fragment]:
    return [resolve_fragment(a, script_extensions) for a in args]


def wrap_fragment(body: str) -> str:
    return SCRIPT_OPEN + body + SCRIPT_CLOSE


def assemble_document(fragments: Iterable[Fragment]) -> str:
    """Build the synthetic document: one script block per fragment, empty body.

    Tests that need DOM fixtures create them from their own scripts.
    """
    scripts = "".join(wrap_fragment(f.text) for f in fragments)
    return "<html><head>" + scripts + "</head><body></body></html>"


def staged_document_path(script_name: str, staging_dir: str | None = None) -> Path:
    base = Path(staging_dir) if staging_dir else Path.cwd()
    return (base / (script_name + DOCUMENT_SUFFIX)).resolve()


def stage_document(path: Path, html: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(html, encoding="utf-8")
    logger.debug("Staged test document", path=str(path), size=len(html))
    return path


def discard_document(path: Path) -> None:
    path.unlink(missing_ok=True)
    logger.debug("Removed staged test document", path=str(path))
