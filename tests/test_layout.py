import pytest

from modules.layout import Diagnostic, LayoutEngine, round_px
from modules.template import Position, Template, TextElement
from utils.exceptions import FontLoadError

LOREM = (
    "Cloud native computing uses an open source software stack to deploy "
    "applications as microservices packaging each part into its own container"
)


def make_element(font_path, text, x=0.1, y=0.5, size=20, box=0.3, color="#FFFFFF"):
    return TextElement(
        text=text,
        font=str(font_path),
        font_size=size,
        color=color,
        position=Position(x=x, y=y),
        box_width=box,
    )


def test_round_px_is_half_up():
    assert round_px(27.5) == 28
    assert round_px(26.5) == 27
    assert round_px(27.49) == 27


def test_wrap_empty_text(layout_engine, font):
    assert layout_engine.wrap_text("", 100, font, 20) == []
    assert layout_engine.wrap_text("   \n\t ", 100, font, 20) == []


def test_wrap_respects_width_budget(layout_engine, fonts, font):
    lines = layout_engine.wrap_text(LOREM, 200, font, 20)

    assert len(lines) > 1
    assert " ".join(lines) == " ".join(LOREM.split())
    for line in lines:
        assert fonts.measure_width(line, font, 20) <= 200 or " " not in line


def test_wrap_is_idempotent(layout_engine, font):
    lines = layout_engine.wrap_text(LOREM, 250, font, 20)

    for line in lines:
        assert layout_engine.wrap_text(line, 250, font, 20) == [line]


def test_wrap_never_splits_overlong_word(layout_engine, font):
    lines = layout_engine.wrap_text("a Pneumonoultramicroscopic b", 30, font, 20)

    assert lines == ["a", "Pneumonoultramicroscopic", "b"]


def test_wrap_wide_budget_keeps_single_line(layout_engine, font):
    assert layout_engine.wrap_text("Jane   Doe", 10_000, font, 20) == ["Jane Doe"]


def test_layout_element_positions(layout_engine, font_path):
    # Zero box width puts every word on its own line
    element = make_element(font_path, "one two three", x=0.1, y=0.5, size=25, box=0.0)

    placements = layout_engine.layout_element("sponsor", element, 1000, 800)

    assert [p.text for p in placements] == ["one", "two", "three"]
    assert all(p.x == 100 for p in placements)
    # 25 * 1.1 = 27.5 rounds up to 28
    assert [p.y for p in placements] == [400, 428, 455]
    assert [p.line for p in placements] == [0, 1, 2]
    assert all(p.element == "sponsor" and p.color == "#FFFFFF" for p in placements)


def test_layout_element_custom_line_spacing(layout_engine, font_path):
    element = make_element(font_path, "one two", y=0.0, size=20, box=0.0)

    placements = layout_engine.layout_element("date", element, 1000, 800, line_spacing=2.0)

    assert [p.y for p in placements] == [0, 40]


def test_layout_element_zero_line_spacing_is_honoured(fonts, font_path):
    element = make_element(font_path, "one two", y=0.0, size=20, box=0.0)
    engine = LayoutEngine(fonts, line_spacing=0.0)

    assert [p.y for p in engine.layout_element("date", element, 1000, 800)] == [0, 0]
    assert [p.y for p in engine.layout_element("date", element, 1000, 800, line_spacing=0)] == [0, 0]


def test_layout_element_empty_text_skips_font(layout_engine):
    element = TextElement(text="", font="")

    assert layout_engine.layout_element("date", element, 1000, 800) == []


def test_layout_element_missing_font_raises(layout_engine, tmp_path):
    element = TextElement(text="Hello", font=str(tmp_path / "missing.ttf"), font_size=20)

    with pytest.raises(FontLoadError):
        layout_engine.layout_element("date", element, 1000, 800)


def test_speaker_pair_name_below_title(layout_engine, font_path):
    title = make_element(font_path, "Talk Title Here", x=0.1, y=0.2, size=20, box=0.0)
    name = make_element(font_path, "Jane Doe", x=0.6, y=0.9, size=30, box=1.0)

    placements = layout_engine.layout_speaker_pair("speaker1", title, name, 1000, 800)

    titles = [p for p in placements if p.element == "speaker1title"]
    names = [p for p in placements if p.element == "speaker1name"]
    assert [p.y for p in titles] == [160, 182, 204]
    # 160 + round(3 * 20 * 1.1) + round(30 * 0.5)
    assert [(p.x, p.y, p.text) for p in names] == [(100, 241, "Jane Doe")]


def test_speaker_pair_name_wraps_against_own_box(layout_engine, font_path):
    title = make_element(font_path, "Talk", x=0.1, y=0.2, size=20, box=1.0)
    name = make_element(font_path, "Jane Doe", x=0.6, y=0.9, size=30, box=0.0)

    placements = layout_engine.layout_speaker_pair("speaker2", title, name, 1000, 800)

    names = [p for p in placements if p.element == "speaker2name"]
    assert [p.text for p in names] == ["Jane", "Doe"]
    assert all(p.x == 100 for p in names)


def test_speaker_pair_empty_title(layout_engine, font_path):
    title = make_element(font_path, "", x=0.1, y=0.2, size=20)
    name = make_element(font_path, "Jane Doe", size=30, box=1.0)

    placements = layout_engine.layout_speaker_pair("speaker1", title, name, 1000, 800)

    assert [(p.x, p.y) for p in placements] == [(100, 175)]


def test_speaker_pair_records_font_failure(layout_engine, font_path, tmp_path):
    title = make_element(tmp_path / "missing.ttf", "Talk", x=0.1, y=0.2, size=20)
    name = make_element(font_path, "Jane Doe", size=30, box=1.0)
    diagnostics = []

    placements = layout_engine.layout_speaker_pair(
        "speaker1", title, name, 1000, 800, diagnostics=diagnostics
    )

    assert [p.element for p in placements] == ["speaker1name"]
    assert placements[0].y == 175
    assert len(diagnostics) == 1
    assert diagnostics[0].element == "speaker1title"


def test_create_layout_end_to_end_name_position(layout_engine, font_path):
    template = Template(sponsor=make_element(font_path, "Jane Doe", x=0.1, y=0.8, size=40, box=0.3))

    placements, diagnostics = layout_engine.create_layout(template, 1600, 900)

    assert diagnostics == []
    assert [(p.text, p.x, p.y) for p in placements] == [("Jane Doe", 160, 720)]


def test_create_layout_continues_after_font_failure(layout_engine, font_path, tmp_path):
    template = Template(
        sponsor=make_element(tmp_path / "missing.ttf", "Sponsor"),
        date=make_element(font_path, "23rd May 2024"),
        title=make_element(font_path, "Spring Meetup"),
    )

    placements, diagnostics = layout_engine.create_layout(template, 1000, 800)

    assert {p.element for p in placements} == {"date", "title"}
    assert [d.element for d in diagnostics] == ["sponsor"]


def test_diagnostic_str():
    assert str(Diagnostic("date", "bad color", line=1)) == "date[1]: bad color"
    assert str(Diagnostic("sponsor", "no font")) == "sponsor: no font"
