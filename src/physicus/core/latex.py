"""Math rendering for chat and worksheet text.

Tutor replies mark mathematics with ``$$...$$`` (block) and ``$...$``
(inline). ``split_math`` cuts a text into plain and math segments in one
left-to-right scan, block delimiters first so ``$$x$$`` is never read as two
inline spans. ``render_math`` hands every math segment to a typesetting
engine and stitches the result back together.

Example:
    ```python
    engine = get_engine()
    render_math("Speed is $v=d/t$ always.", engine)
    ```
"""

import logging
import re
from enum import Enum
from typing import List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict
from pylatexenc.latex2text import LatexNodes2Text

from physicus.core.logging import LogComponent

logger = logging.getLogger(LogComponent.MATH.value)

MATH_PATTERN = re.compile(r"\$\$(?P<block>[\s\S]+?)\$\$|\$(?P<inline>[^$\n]+?)\$")


class SegmentKind(str, Enum):
    TEXT = "text"
    INLINE = "inline"
    BLOCK = "block"


class Segment(BaseModel):
    """A run of plain text or the body of one math span (delimiters stripped)."""
    model_config = ConfigDict(frozen=True)

    kind: SegmentKind
    content: str

    @property
    def is_math(self) -> bool:
        return self.kind != SegmentKind.TEXT


@runtime_checkable
class TypesettingEngine(Protocol):
    """Anything that can typeset a single LaTeX expression."""

    def render_to_string(
        self,
        expression: str,
        display_mode: bool = False,
        throw_on_error: bool = False,
    ) -> str:
        ...


class UnicodeMathEngine:
    """Typesets LaTeX as Unicode text for the terminal using pylatexenc."""

    def __init__(self) -> None:
        self._converter = LatexNodes2Text(
            math_mode="text",
            keep_comments=False,
            strict_latex_spaces=False,
        )

    def render_to_string(
        self,
        expression: str,
        display_mode: bool = False,
        throw_on_error: bool = False,
    ) -> str:
        try:
            rendered = self._converter.latex_to_text(expression).strip()
        except Exception:
            if throw_on_error:
                raise
            logger.debug(f"Falling back to raw LaTeX for: {expression!r}")
            rendered = expression.strip()
        if display_mode:
            return f"\n    {rendered}\n"
        return rendered


_engine: Optional[TypesettingEngine] = None


def get_engine() -> TypesettingEngine:
    """Return the process-wide engine, building it on first use."""
    global _engine
    if _engine is None:
        _engine = UnicodeMathEngine()
    return _engine


def split_math(text: str) -> List[Segment]:
    """Split ``text`` into ordered plain and math segments."""
    segments: List[Segment] = []
    position = 0
    for match in MATH_PATTERN.finditer(text):
        if match.start() > position:
            segments.append(Segment(kind=SegmentKind.TEXT, content=text[position:match.start()]))
        if match.group("block") is not None:
            segments.append(Segment(kind=SegmentKind.BLOCK, content=match.group("block")))
        else:
            segments.append(Segment(kind=SegmentKind.INLINE, content=match.group("inline")))
        position = match.end()
    if position < len(text):
        segments.append(Segment(kind=SegmentKind.TEXT, content=text[position:]))
    return segments


def render_math(text: str, engine: Optional[TypesettingEngine]) -> str:
    """Typeset the math spans of ``text``.

    Never raises: without an engine, or if typesetting fails, the original
    text comes back unchanged.
    """
    if not text or engine is None:
        return text
    try:
        parts = []
        for segment in split_math(text):
            if segment.kind == SegmentKind.TEXT:
                parts.append(segment.content)
            else:
                parts.append(
                    engine.render_to_string(
                        segment.content,
                        display_mode=segment.kind == SegmentKind.BLOCK,
                        throw_on_error=False,
                    )
                )
        return "".join(parts)
    except Exception:
        logger.exception("Failed to render math")
        return text
