import json

import numpy as np
import pytest

from config import settings
from conftest import BACKGROUND_COLOR, solid
from main import PosterPipeline
from modules.exporter import Exporter
from modules.feed import EventData
from modules.speaker_images import SpeakerImageCache
from utils.exceptions import ConfigError, EventNotFoundError, TemplateParseError, WriteError
from utils.image_utils import load_image, save_image

GREEN = (0, 200, 0, 255)


@pytest.fixture
def pipeline(tmp_path, fonts):
    return PosterPipeline(
        speaker_images=SpeakerImageCache(tmp_path / "speaker-images"),
        exporter=Exporter(tmp_path / "artifacts"),
        fonts=fonts,
    )


def write_template(path, template_dict):
    path.write_text(json.dumps(template_dict), encoding="utf-8")
    return path


def test_end_to_end_scenario(pipeline, template_file, background_png, portrait_png):
    template = pipeline.load_template(template_file)
    event_data = EventData(event_id="1", speaker1_image=str(portrait_png))

    canvas, diagnostics = pipeline.render(template, event_data, background_path=background_png)

    assert diagnostics == []
    assert canvas.shape == (900, 1600, 4)

    # Portrait circle: d=300 centered at (400, 450)
    assert (canvas[450, 400] == GREEN).all()
    Y, X = np.ogrid[:900, :1600]
    circle = (X - 400) ** 2 + (Y - 450) ** 2 <= 149 ** 2
    assert (canvas[circle] == GREEN).all()

    # "Jane Doe" starts at (160, 720); nothing else is drawn in this region
    region = canvas[700:800, :700]
    ink = np.argwhere((region != BACKGROUND_COLOR).any(axis=2))
    assert ink.size > 0
    top, left = ink.min(axis=0)
    assert 715 <= 700 + top <= 745
    assert 150 <= left <= 175


def test_render_does_not_mutate_template(pipeline, template_file, background_png):
    template = pipeline.load_template(template_file)

    pipeline.render(template, EventData(sponsor="Example Corp", date="2024-05-23"), background_path=background_png)

    assert template.sponsor.text == "Jane Doe"
    assert template.date.text == "Some day"


def test_template_background_wins(pipeline, tmp_path, template_dict, background_png):
    blue = tmp_path / "blue.png"
    save_image(solid(300, 200, (0, 0, 255, 255)), blue)
    template_dict["background"]["image"] = str(blue)
    template = pipeline.load_template(write_template(tmp_path / "t.json", template_dict))

    canvas, _ = pipeline.render(template, EventData(), background_path=background_png)

    assert canvas.shape == (200, 300, 4)
    assert (canvas[0, 0] == (0, 0, 255, 255)).all()


def test_caller_overlays_below_template_overlays(pipeline, tmp_path, background_png):
    red = tmp_path / "red.png"
    green = tmp_path / "green.png"
    save_image(solid(10, 10, (255, 0, 0, 255)), red)
    save_image(solid(5, 5, GREEN), green)
    template = pipeline.load_template(
        write_template(tmp_path / "t.json", {"background": {"overlays": [str(green)]}})
    )

    canvas, _ = pipeline.render(template, EventData(), background_path=background_png, overlay_paths=[red])

    assert (canvas[0, 0] == GREEN).all()
    assert (canvas[7, 7] == (255, 0, 0, 255)).all()
    assert (canvas[20, 20] == BACKGROUND_COLOR).all()


def test_render_without_background_is_fatal(pipeline):
    with pytest.raises(ConfigError):
        pipeline.render(pipeline.load_template(), EventData())


def test_render_resizes_to_width(pipeline, background_png):
    canvas, _ = pipeline.render(pipeline.load_template(), EventData(), background_path=background_png, width=800)

    assert canvas.shape == (450, 800, 4)


def test_render_collects_diagnostics(pipeline, tmp_path, template_dict, background_png):
    template_dict["sponsor"]["font"] = str(tmp_path / "missing.ttf")
    template_dict["date"]["color"] = "not-a-color"
    template = pipeline.load_template(write_template(tmp_path / "t.json", template_dict))
    event_data = EventData(event_id="1", speaker1_image=str(tmp_path / "missing.png"))

    canvas, diagnostics = pipeline.render(template, event_data, background_path=background_png)

    assert {d.element for d in diagnostics} == {"speaker1image", "sponsor", "date"}
    assert canvas.shape == (900, 1600, 4)


def test_generate_writes_poster(pipeline, template_file, background_png, events_file):
    result = pipeline.generate(41, template_path=template_file, background_path=background_png, events_file=events_file)

    assert result.output_path == pipeline.exporter.output_dir / "41.jpg"
    assert result.output_path.is_file()
    assert (result.width, result.height) == (1600, 900)
    assert load_image(result.output_path).shape == (900, 1600, 4)


def test_generate_with_width(pipeline, template_file, background_png, events_file):
    result = pipeline.generate(
        "41", template_path=template_file, background_path=background_png, width=800, events_file=events_file
    )

    assert result.output_path.name == "41-800.jpg"
    assert load_image(result.output_path).shape == (450, 800, 4)


def test_generate_explicit_output_name(pipeline, background_png, events_file):
    result = pipeline.generate(42, background_path=background_png, output_path="winter.jpg", events_file=events_file)

    assert result.output_path == pipeline.exporter.output_dir / "winter.jpg"
    assert result.output_path.is_file()


def test_generate_unknown_event(pipeline, background_png, events_file):
    with pytest.raises(EventNotFoundError):
        pipeline.generate(999, background_path=background_png, events_file=events_file)


def test_generate_checks_background_before_feed(pipeline, tmp_path):
    with pytest.raises(ConfigError):
        pipeline.generate(41, events_file=tmp_path / "does-not-matter.yml")


def test_generate_saves_metadata(pipeline, background_png, events_file, monkeypatch):
    monkeypatch.setattr(settings, "SAVE_METADATA", True)

    result = pipeline.generate(41, background_path=background_png, events_file=events_file)

    metadata = json.loads(result.output_path.with_suffix(".json").read_text(encoding="utf-8"))
    assert metadata["event_id"] == "41"
    assert metadata["size"] == {"width": 1600, "height": 900}


def test_generate_all_continues_on_error(pipeline, template_file, background_png, events_file, monkeypatch):
    save_poster = pipeline.renderer.save_poster

    def flaky_save(poster, output_path):
        if output_path.name.startswith("42"):
            raise WriteError(output_path, "disk full")
        save_poster(poster, output_path)

    monkeypatch.setattr(pipeline.renderer, "save_poster", flaky_save)

    batch = pipeline.generate_all(template_path=template_file, background_path=background_png, events_file=events_file)

    assert (batch.total, batch.succeeded, batch.failed) == (3, 2, 1)
    assert [r.event_id for r in batch.results] == ["41", "43"]
    assert batch.errors[0].startswith("42:")
    assert sorted(p.name for p in pipeline.exporter.output_dir.iterdir()) == ["41.jpg", "43.jpg"]


def test_generate_all_template_error_is_fatal(pipeline, tmp_path, background_png, events_file):
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")

    with pytest.raises(TemplateParseError):
        pipeline.generate_all(template_path=broken, background_path=background_png, events_file=events_file)

    assert list(pipeline.exporter.output_dir.iterdir()) == []


def test_generate_all_without_background_is_fatal(pipeline, events_file):
    with pytest.raises(ConfigError):
        pipeline.generate_all(events_file=events_file)
