"""Pure text transforms that make design documents self-contained.

Two transforms run at the catalog boundary:

``inline_stylesheets``
    Replaces ``<link rel="stylesheet" href="...">`` tags that point at
    relative paths with ``<style>`` blocks holding the file's contents, so the
    presentation process never has to resolve files on disk. Absolute URLs
    (``http:``, ``https:``, ``data:``, protocol-relative ``//``) are left for
    the browser. A missing or unreadable target leaves its tag untouched.

``transform_unsupported_css``
    Applies a substitution table, in order, to rewrite CSS the presentation
    surface cannot render. The default table maps the ``oklch()`` colors the
    authoring agent commonly emits to close ``rgb()`` values, collapses any
    other ``oklch(l c h)`` to a neutral gray, and turns relative-color syntax
    ``rgb(from var(--x) r g b)`` into plain ``var(--x)``. Pass a different
    table to extend or replace these rules.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

LOGGER = logging.getLogger(__name__)

_LINK_TAG = re.compile(r"<link\b([^>]*)>", re.IGNORECASE)
_REL_STYLESHEET = re.compile(r"""\brel\s*=\s*["']?stylesheet["']?""", re.IGNORECASE)
_HREF = re.compile(r"""\bhref\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_ABSOLUTE_URL = re.compile(r"^(?:[a-z][a-z0-9+.-]*:|//)", re.IGNORECASE)


def inline_stylesheets(html: str, base_dir: Path) -> str:
    """Inline relative stylesheet links found in ``html``.

    Args:
        html: Document body.
        base_dir: Directory relative hrefs are resolved against.

    Returns:
        str: Document body with resolvable stylesheets inlined.
    """

    def _replace(match: re.Match[str]) -> str:
        attributes = match.group(1)
        if not _REL_STYLESHEET.search(attributes):
            return match.group(0)
        href_match = _HREF.search(attributes)
        if href_match is None:
            return match.group(0)
        href = href_match.group(1).strip()
        if _ABSOLUTE_URL.match(href):
            return match.group(0)

        relative = href.split("#", 1)[0].split("?", 1)[0]
        css_path = base_dir / relative
        try:
            css = css_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            LOGGER.warning("CSS file not found: %s", css_path)
            return match.group(0)
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Failed to inline CSS %s: %s", href, exc)
            return match.group(0)

        LOGGER.debug("Inlined CSS file: %s", href)
        return f"<style>\n/* Inlined from {href} */\n{css}\n</style>"

    return _LINK_TAG.sub(_replace, html)


@dataclass(frozen=True, slots=True)
class CssSubstitution:
    """One rewrite rule in a CSS substitution table.

    Attributes:
        pattern: Literal text, or a regular expression when ``literal`` is false.
        replacement: Replacement text; may use group references for regexes.
        literal: Whether ``pattern`` is matched verbatim.
    """

    pattern: str
    replacement: str
    literal: bool = True

    def apply(self, text: str) -> str:
        if self.literal:
            return text.replace(self.pattern, self.replacement)
        return re.sub(self.pattern, self.replacement, text, flags=re.IGNORECASE)


OKLCH_COLOR_TABLE: dict[str, str] = {
    "oklch(0.9900 0.0050 240.0000)": "rgb(250, 250, 252)",
    "oklch(0.1500 0.0200 240.0000)": "rgb(30, 30, 40)",
    "oklch(1.0000 0 0)": "rgb(255, 255, 255)",
    "oklch(0.3500 0.1200 240.0000)": "rgb(50, 70, 150)",
    "oklch(0.5500 0.1500 160.0000)": "rgb(60, 150, 120)",
    "oklch(0.9600 0.0100 240.0000)": "rgb(240, 240, 245)",
    "oklch(0.5000 0.0200 240.0000)": "rgb(100, 100, 120)",
    "oklch(0.6500 0.1800 160.0000)": "rgb(80, 180, 140)",
    "oklch(0.5500 0.2200 15.0000)": "rgb(200, 80, 70)",
    "oklch(0.6000 0.1800 160.0000)": "rgb(70, 160, 120)",
    "oklch(0.7000 0.1500 60.0000)": "rgb(200, 170, 80)",
    "oklch(0.9200 0.0100 240.0000)": "rgb(230, 230, 235)",
    "oklch(0.9800 0.0100 240.0000)": "rgb(248, 248, 252)",
    "oklch(0.6500 0.1500 280.0000)": "rgb(140, 100, 180)",
}

DEFAULT_SUBSTITUTIONS: tuple[CssSubstitution, ...] = (
    *(CssSubstitution(oklch, rgb) for oklch, rgb in OKLCH_COLOR_TABLE.items()),
    CssSubstitution(r"oklch\([0-9.]+ [0-9.]+ [0-9.]+\)", "rgb(128, 128, 128)", literal=False),
    CssSubstitution(r"rgb\(from var\(([^)]+)\) r g b\)", r"var(\1)", literal=False),
)


def transform_unsupported_css(
    html: str,
    substitutions: Iterable[CssSubstitution] = DEFAULT_SUBSTITUTIONS,
) -> str:
    """Apply ``substitutions`` to ``html`` in order."""
    for substitution in substitutions:
        html = substitution.apply(html)
    return html


__all__ = [
    "CssSubstitution",
    "DEFAULT_SUBSTITUTIONS",
    "OKLCH_COLOR_TABLE",
    "inline_stylesheets",
    "transform_unsupported_css",
]
