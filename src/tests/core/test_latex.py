"""Tests for math splitting and rendering."""

from physicus.core.latex import (
    SegmentKind,
    TypesettingEngine,
    UnicodeMathEngine,
    get_engine,
    render_math,
    split_math,
)
from tests.conftest import BrokenEngine, FakeEngine


class TestSplitMath:
    """Test suite for segmenting text into plain and math runs."""

    def test_plain_text(self):
        segments = split_math("no math here")
        assert [(s.kind, s.content) for s in segments] == [(SegmentKind.TEXT, "no math here")]

    def test_inline_math(self):
        segments = split_math("Speed is $v=d/t$ always.")
        assert [(s.kind, s.content) for s in segments] == [
            (SegmentKind.TEXT, "Speed is "),
            (SegmentKind.INLINE, "v=d/t"),
            (SegmentKind.TEXT, " always."),
        ]

    def test_block_math_is_not_read_as_inline(self):
        segments = split_math("Newton: $$F = ma$$ done")
        assert [(s.kind, s.content) for s in segments] == [
            (SegmentKind.TEXT, "Newton: "),
            (SegmentKind.BLOCK, "F = ma"),
            (SegmentKind.TEXT, " done"),
        ]

    def test_block_math_may_span_lines(self):
        segments = split_math("$$a\n+ b$$")
        assert len(segments) == 1
        assert segments[0].kind == SegmentKind.BLOCK
        assert segments[0].content == "a\n+ b"

    def test_mixed_order_is_preserved(self):
        kinds = [s.kind for s in split_math("$x$ and $$y$$ and $z$")]
        assert kinds == [
            SegmentKind.INLINE,
            SegmentKind.TEXT,
            SegmentKind.BLOCK,
            SegmentKind.TEXT,
            SegmentKind.INLINE,
        ]

    def test_unmatched_dollar_stays_text(self):
        segments = split_math("It costs $5 today")
        assert all(not s.is_math for s in segments)
        assert "".join(s.content for s in segments) == "It costs $5 today"

    def test_empty_text(self):
        assert split_math("") == []


class TestRenderMath:
    """Test suite for rendering math spans through an engine."""

    def test_renders_each_span(self):
        engine = FakeEngine()
        result = render_math("Use $E=mc^2$ and $$F = ma$$.", engine)
        assert result == "Use <E=mc^2> and [F = ma]."
        assert engine.calls == [("E=mc^2", False), ("F = ma", True)]

    def test_without_engine_returns_text(self):
        text = "Use $E=mc^2$."
        assert render_math(text, None) == text

    def test_empty_text(self):
        assert render_math("", FakeEngine()) == ""

    def test_engine_failure_returns_original(self):
        text = "Use $E=mc^2$."
        assert render_math(text, BrokenEngine()) == text

    def test_plain_text_untouched(self):
        engine = FakeEngine()
        assert render_math("just words", engine) == "just words"
        assert engine.calls == []


class TestUnicodeMathEngine:
    """Test suite for the pylatexenc-backed engine."""

    def test_satisfies_protocol(self):
        assert isinstance(UnicodeMathEngine(), TypesettingEngine)

    def test_greek_letters(self):
        assert "α" in UnicodeMathEngine().render_to_string(r"\alpha + \beta")

    def test_display_mode_sets_expression_apart(self):
        rendered = UnicodeMathEngine().render_to_string("F = ma", display_mode=True)
        assert rendered.startswith("\n")
        assert rendered.endswith("\n")
        assert "F = ma" in rendered

    def test_shared_engine(self):
        assert get_engine() is get_engine()

