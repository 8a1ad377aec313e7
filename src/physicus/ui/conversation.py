"""Conversation view: the message list as rich renderables."""

from typing import Optional, Sequence

from rich.align import Align
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.text import Text

from physicus.core.latex import TypesettingEngine, render_math
from physicus.core.models import Message

TUTOR_TITLE = "PAM"
STUDENT_TITLE = "You"


def message_body(message: Message, in_flight: bool, engine: Optional[TypesettingEngine]) -> str:
    """Text shown for ``message``; math stays raw while a reply is in flight."""
    if in_flight:
        return message.text
    return render_math(message.text, engine)


def render_message(message: Message, in_flight: bool, engine: Optional[TypesettingEngine]) -> Align:
    body = Text(message_body(message, in_flight, engine))
    if message.is_user:
        panel = Panel(body, title=STUDENT_TITLE, title_align="right", border_style="blue", expand=False)
        return Align.right(panel)
    panel = Panel(body, title=TUTOR_TITLE, title_align="left", border_style="cyan", expand=False)
    return Align.left(panel)


def render_conversation(
    messages: Sequence[Message],
    is_streaming: bool,
    engine: Optional[TypesettingEngine],
) -> RenderableType:
    """Render every message; the newest assistant message is left raw while streaming."""
    rendered = []
    last = len(messages) - 1
    for index, message in enumerate(messages):
        in_flight = is_streaming and index == last and not message.is_user
        rendered.append(render_message(message, in_flight, engine))
    return Group(*rendered)
