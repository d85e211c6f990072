import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass

from prompt_toolkit.application.current import get_app_or_none
from prompt_toolkit.document import Document
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout.processors import Processor, Transformation, TransformationInput
from prompt_toolkit.layout.utils import explode_text_fragments

from suggestion_engine import CandidatePools, match, is_valid

logger = logging.getLogger(__name__)

# Keys that move or delete without asking for a new suggestion
NAVIGATION_KEYS = ("left", "right", "backspace", "delete")


@dataclass
class LineState:
    buffer: str = ""
    cursor: int = 0

    def __post_init__(self):
        self.cursor = max(0, min(self.cursor, len(self.buffer)))


@dataclass
class RenderPlan:
    typed: str
    ghost: str
    cursor_column: int


def next_tick(fn):
    asyncio.get_running_loop().call_soon(fn)


def _invalidate():
    app = get_app_or_none()
    if app is not None and app.is_running:
        app.invalidate()


class LineEditor:
    """Line buffer, cursor and ghost suggestion shared by key handling and rendering.

    The prompt_toolkit buffer does the actual editing; the editor mirrors it in
    `state` and decides what the suggestion is and how the line is drawn.
    """

    def __init__(self, pools: CandidatePools, schedule=next_tick, redraw=_invalidate):
        self.pools = pools
        self.schedule = schedule
        self.redraw = redraw
        self.state = LineState()
        self.suggestion = ""
        self.accepted = False
        self.force_render = False
        self.applying_change = False
        # Returns the live (text, cursor); set when attached to a prompt_toolkit buffer
        self.line_source = None

    def reset(self):
        """Fresh line for a new prompt; a pushed suggestion survives until typing replaces it."""
        self.state = LineState()
        self.accepted = False

    def sync(self, text, cursor):
        self.state = LineState(text, cursor)

    @contextmanager
    def applying(self):
        """Buffer edits made by the editor itself; the text-changed hook ignores them."""
        self.applying_change = True
        try:
            yield
        finally:
            self.applying_change = False

    def handle_key(self, name):
        """React to a key after the buffer has been updated.

        Returns True when the key changed `state` (only tab can do that).
        """
        self.force_render = False
        if name == "tab":
            if not self.suggestion:
                return False
            self.state = LineState(self.suggestion, len(self.suggestion))
            self.suggestion = ""
            self.accepted = True
            return True
        if name == "escape":
            self.suggestion = ""
        elif name in NAVIGATION_KEYS:
            if self.accepted:
                self.suggestion = ""
                self.accepted = False
        elif name != "return":
            self.schedule(self.recompute)
        return False

    def recompute(self):
        if self.line_source is not None:
            self.sync(*self.line_source())
        state = self.state
        if not state.buffer.strip():
            self.suggestion = ""
        else:
            self.suggestion = match(state.buffer[:state.cursor], self.pools)
        self.accepted = False
        self.redraw()

    def push_suggestion(self, text):
        """Suggestion delivered by the background producer; last writer wins."""
        self.suggestion = text or ""
        self.force_render = True
        self.redraw()

    def render_plan(self):
        """How to draw the line, or None for the plain default rendering."""
        state = self.state
        if not self.suggestion or not (state.buffer or self.force_render):
            return None
        if not is_valid(self.suggestion, state.buffer[:state.cursor]):
            logger.debug(f"Dropping stale suggestion {self.suggestion!r} for {state.buffer!r}")
            self.suggestion = ""
            return None
        if not self.suggestion.startswith(state.buffer):
            return None
        return RenderPlan(
            typed=state.buffer[:state.cursor],
            ghost=self.suggestion[state.cursor:],
            cursor_column=state.cursor,
        )


class GhostTextProcessor(Processor):
    """Redraws the whole input line as typed text plus the dim rest of the suggestion."""

    def __init__(self, editor: LineEditor, style: str = "class:ghost") -> None:
        self.editor = editor
        self.style = style

    def apply_transformation(self, ti: TransformationInput) -> Transformation:
        if ti.lineno != ti.document.line_count - 1:
            return Transformation(fragments=ti.fragments)

        self.editor.sync(ti.document.text, ti.document.cursor_position)
        plan = self.editor.render_plan()
        if plan is None:
            return Transformation(fragments=ti.fragments)

        cut = ti.source_to_display(plan.cursor_column)
        fragments = explode_text_fragments(ti.fragments)[:cut]
        # The suggestion extends the buffer, so source and display positions line up
        return Transformation(fragments=fragments + [(self.style, plan.ghost)])


def attach(editor: LineEditor, buffer) -> None:
    """Every typed edit to `buffer` schedules a suggestion recompute."""

    def on_text_changed(buf):
        if editor.applying_change:
            return
        editor.sync(buf.text, buf.cursor_position)
        editor.handle_key("other")

    buffer.on_text_changed += on_text_changed
    editor.line_source = lambda: (buffer.text, buffer.cursor_position)


def bind_keys(editor: LineEditor) -> KeyBindings:
    kb = KeyBindings()

    def sync(buf):
        editor.sync(buf.text, buf.cursor_position)

    @kb.add("tab")
    def _(event):
        buf = event.current_buffer
        sync(buf)
        if editor.handle_key("tab"):
            with editor.applying():
                buf.document = Document(editor.state.buffer, editor.state.cursor)

    @kb.add("escape", eager=True)
    def _(event):
        sync(event.current_buffer)
        editor.handle_key("escape")

    @kb.add("left")
    def _(event):
        buf = event.current_buffer
        buf.cursor_position += buf.document.get_cursor_left_position(count=event.arg)
        sync(buf)
        editor.handle_key("left")

    @kb.add("right")
    def _(event):
        buf = event.current_buffer
        buf.cursor_position += buf.document.get_cursor_right_position(count=event.arg)
        sync(buf)
        editor.handle_key("right")

    @kb.add("backspace")
    def _(event):
        buf = event.current_buffer
        with editor.applying():
            buf.delete_before_cursor(count=event.arg)
        sync(buf)
        editor.handle_key("backspace")

    @kb.add("delete")
    def _(event):
        buf = event.current_buffer
        with editor.applying():
            buf.delete(count=event.arg)
        sync(buf)
        editor.handle_key("delete")

    # Keys that may leave the text unchanged still count as typing
    def moved(buf, move):
        with editor.applying():
            move(buf)
        sync(buf)
        editor.handle_key("other")

    @kb.add("home")
    @kb.add("c-a")
    def _(event):
        moved(event.current_buffer, lambda buf: setattr(
            buf, "cursor_position", buf.cursor_position + buf.document.get_start_of_line_position()))

    @kb.add("end")
    @kb.add("c-e")
    def _(event):
        moved(event.current_buffer, lambda buf: setattr(
            buf, "cursor_position", buf.cursor_position + buf.document.get_end_of_line_position()))

    @kb.add("up")
    def _(event):
        moved(event.current_buffer, lambda buf: buf.auto_up(count=event.arg))

    @kb.add("down")
    def _(event):
        moved(event.current_buffer, lambda buf: buf.auto_down(count=event.arg))

    return kb
