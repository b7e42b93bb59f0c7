import base64
import logging
import xml.etree.ElementTree as ET

import pytest

from conftest import png_bytes
from qrstyle.border import BorderOptions, Label, Position, RingOptions, apply_border, border_layout
from qrstyle.encoders import Artifact, get_encoder
from qrstyle.errors import ConfigError, UnsupportedFormatError
from qrstyle.geometry import Rect
from qrstyle.options import StylingOptions
from qrstyle.scene import render_scene

SVG_NS = "{http://www.w3.org/2000/svg}"


@pytest.fixture
def scene400(qr_modules):
    return render_scene(qr_modules, StylingOptions(size=400))


@pytest.fixture
def svg400(scene400):
    return get_encoder("svg").encode(scene400)


@pytest.fixture
def png400(scene400):
    return get_encoder("png").encode(scene400)


def _labels(**texts):
    return {Position(k): Label(v) for k, v in texts.items()}


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

def test_round_layout():
    layout = border_layout(400, 400, BorderOptions(thickness=40, roundness=1.0, labels=_labels(top="SCAN ME")))
    assert (layout.width, layout.height) == (480, 480)
    assert layout.offset == (40, 40)
    assert layout.ring == Rect(20, 20, 440, 440, (220, 220, 220, 220))
    (label,) = layout.labels
    assert (label.x, label.y, label.rotation) == (240, 20, 0)
    assert label.arc_id == "top-text-path"
    assert label.arc == "M 20,240 A 220,220 0 0 1 460,240"


def test_square_layout_labels():
    options = BorderOptions(thickness=20, labels=_labels(left="L", right="R", bottom="B", top="T"))
    layout = border_layout(200, 200, options)
    assert layout.corner_radius == 0
    placements = {p.position: p for p in layout.labels}
    assert [p.position for p in layout.labels] == list(Position)
    assert (placements[Position.LEFT].x, placements[Position.LEFT].y) == (10, 120)
    assert placements[Position.LEFT].rotation == -90
    assert placements[Position.RIGHT].rotation == 90
    assert (placements[Position.BOTTOM].x, placements[Position.BOTTOM].y) == (120, 230)
    assert all(p.arc is None for p in layout.labels)


def test_rectangular_artifact_keeps_ring_square():
    layout = border_layout(300, 200, BorderOptions(thickness=10))
    assert (layout.width, layout.height) == (320, 220)
    assert layout.ring == Rect(55, 5, 210, 210)


def test_ring_radius_never_negative():
    layout = border_layout(100, 100, BorderOptions(thickness=50, roundness=0.1))
    assert layout.corner_radius == 0


def test_default_label_style():
    layout = border_layout(100, 100, BorderOptions(labels=_labels(top="X")))
    assert "font-size" in layout.labels[0].style
    layout = border_layout(100, 100, BorderOptions(labels={Position.TOP: Label("X", "fill: red")}))
    assert layout.labels[0].style == "fill: red"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("options, fields", [
    (BorderOptions(thickness=-1), ["border.thickness"]),
    (BorderOptions(roundness=1.5), ["border.roundness"]),
    (BorderOptions(roundness=-0.1), ["border.roundness"]),
    (BorderOptions(thickness=-1, roundness=2, color="nope"), ["border.thickness", "border.roundness", "border.color"]),
    (BorderOptions(labels={"top": Label("x")}), ["border.labels"]),
])
def test_invalid_border(svg400, options, fields):
    with pytest.raises(ConfigError) as exc:
        apply_border(svg400, options)
    assert exc.value.fields == fields


# ---------------------------------------------------------------------------
# Compositing
# ---------------------------------------------------------------------------

def test_zero_thickness_is_a_no_op(svg400, png400):
    options = BorderOptions(thickness=0, labels=_labels(top="ignored"))
    assert apply_border(svg400, options) is svg400
    assert apply_border(png400, options) is png400


def test_svg_border_scenario(svg400):
    options = BorderOptions(thickness=40, roundness=1.0, color="#333333",
                            labels={Position.TOP: Label("SCAN ME", "font-size: 14px; fill: #333;"),
                                    Position.BOTTOM: Label("qrstyle")})
    bordered = apply_border(svg400, options)
    assert (bordered.format, bordered.width, bordered.height) == ("svg", 480, 480)

    root = ET.fromstring(bordered.payload)
    assert root.get("width") == "480"
    assert root.find(f"{SVG_NS}image") is not None
    ids = {p.get("id") for p in root.iter(f"{SVG_NS}path")}
    assert {"top-text-path", "bottom-text-path"} <= ids
    texts = ["".join(t.itertext()) for t in root.iter(f"{SVG_NS}text")]
    assert texts == ["SCAN ME", "qrstyle"]
    assert "textPath" in bordered.payload
    ring = next(r for r in root.iter(f"{SVG_NS}rect") if r.get("stroke"))
    assert ring.get("stroke") == "#333333"
    assert float(ring.get("rx")) == 220


def test_svg_straight_labels_and_dashes(svg400):
    options = BorderOptions(thickness=20, dasharray="5,5", labels=_labels(left="SIDE"))
    bordered = apply_border(svg400, options)
    root = ET.fromstring(bordered.payload)
    ring = next(r for r in root.iter(f"{SVG_NS}rect") if r.get("stroke"))
    assert ring.get("stroke-dasharray") == "5,5"
    (text,) = root.iter(f"{SVG_NS}text")
    assert text.text == "SIDE"
    assert text.get("transform").startswith("rotate(-90")


def test_raster_border(png400):
    options = BorderOptions(thickness=40, roundness=1.0, color="#000000", labels=_labels(top="HI"))
    bordered = apply_border(png400, options)
    assert (bordered.width, bordered.height) == (480, 480)
    assert bordered.payload.size == (480, 480)
    # Ring on the left edge, original content untouched in the middle
    assert bordered.payload.getpixel((5, 240)) == (0, 0, 0, 255)
    assert bordered.payload.getpixel((240, 240)) == png400.payload.getpixel((200, 200))
    # Outside the circular ring stays transparent
    assert bordered.payload.getpixel((2, 2))[3] == 0
    assert bordered.to_bytes().startswith(b"\x89PNG")


def test_unknown_artifact_format():
    with pytest.raises(UnsupportedFormatError):
        apply_border(Artifact("gif", 10, 10, b""), BorderOptions(thickness=5))


# ---------------------------------------------------------------------------
# Extra rings and image labels
# ---------------------------------------------------------------------------

XLINK_HREF = "{http://www.w3.org/1999/xlink}href"


def test_inner_and_outer_ring_layout():
    options = BorderOptions(thickness=40, inner=RingOptions(10, "#ff0000"), outer=RingOptions(4, "#0000ff"))
    layout = border_layout(400, 400, options)
    # Inner stroke spans 30..40, ending where the content starts
    assert layout.inner.rect == Rect(35, 35, 410, 410)
    assert layout.outer.rect == Rect(2, 2, 476, 476)
    assert [r.color for r in layout.rings] == ["#000000", "#ff0000", "#0000ff"]
    assert [r.thickness for r in layout.rings] == [40, 10, 4]


def test_inner_ring_radius_follows_main_ring():
    layout = border_layout(400, 400, BorderOptions(thickness=40, roundness=1.0, inner=RingOptions(10)))
    assert layout.corner_radius == 220
    # 235 - 5 on the base ring, pulled in by 30
    assert layout.inner.corner_radius == 205
    assert layout.outer is None
    assert len(layout.rings) == 2


@pytest.mark.parametrize("options, fields", [
    (BorderOptions(inner=RingOptions(thickness=-2)), ["border.inner.thickness"]),
    (BorderOptions(outer=RingOptions(color="nope")), ["border.outer.color"]),
    (BorderOptions(inner="thin"), ["border.inner"]),
    (BorderOptions(labels={Position.TOP: Label.from_image(b"")}), ["border.labels.top.image"]),
])
def test_invalid_extra_rings_and_images(svg400, options, fields):
    with pytest.raises(ConfigError) as exc:
        apply_border(svg400, options)
    assert exc.value.fields == fields


def test_svg_draws_all_rings(svg400):
    options = BorderOptions(thickness=40, dasharray="5,5",
                            inner=RingOptions(10, "#ff0000"), outer=RingOptions(4, "#0000ff", "2,2"))
    root = ET.fromstring(apply_border(svg400, options).payload)
    rings = [r for r in root.iter(f"{SVG_NS}rect") if r.get("stroke")]
    assert [r.get("stroke") for r in rings] == ["#000000", "#ff0000", "#0000ff"]
    assert [r.get("stroke-dasharray") for r in rings] == ["5,5", None, "2,2"]
    assert float(rings[1].get("x")) == 35


def test_svg_image_label(svg400, logo_png):
    options = BorderOptions(thickness=40, labels={Position.TOP: Label.from_image(logo_png),
                                                  Position.BOTTOM: Label("TEXT")})
    layout = border_layout(400, 400, options)
    image = next(p for p in layout.labels if p.image is not None)
    assert (image.x, image.y, image.size, image.rotation) == (240, 20, 40, 0)

    root = ET.fromstring(apply_border(svg400, options).payload)
    # Embedded original first, then the label image
    images = root.findall(f"{SVG_NS}image")
    assert len(images) == 2
    label = images[1]
    href = label.get(XLINK_HREF) or label.get("href")
    assert href.startswith("data:image/png;base64,")
    assert (float(label.get("x")), float(label.get("y"))) == (220, 0)
    assert (float(label.get("width")), float(label.get("height"))) == (40, 40)
    assert ["".join(t.itertext()) for t in root.iter(f"{SVG_NS}text")] == ["TEXT"]


def test_svg_image_label_url_is_passed_through(svg400):
    options = BorderOptions(thickness=20, labels={Position.LEFT: Label.from_image("https://example.com/a.png")})
    root = ET.fromstring(apply_border(svg400, options).payload)
    label = root.findall(f"{SVG_NS}image")[1]
    assert (label.get(XLINK_HREF) or label.get("href")) == "https://example.com/a.png"


def test_raster_image_label(png400):
    red = png_bytes(color=(255, 0, 0, 255))
    options = BorderOptions(thickness=40, outer=RingOptions(4, "#0000ff"),
                            labels={Position.TOP: Label.from_image(red)})
    bordered = apply_border(png400, options)
    assert bordered.payload.getpixel((240, 20)) == (255, 0, 0, 255)
    # Outer ring painted over the main ring along the left edge
    assert bordered.payload.getpixel((1, 240)) == (0, 0, 255, 255)
    assert bordered.payload.getpixel((20, 240)) == (0, 0, 0, 255)


def test_raster_image_label_from_data_uri(png400):
    uri = "data:image/png;base64," + base64.b64encode(png_bytes(color=(0, 255, 0, 255))).decode("ascii")
    bordered = apply_border(png400, BorderOptions(thickness=40, labels={Position.RIGHT: Label.from_image(uri)}))
    assert bordered.payload.getpixel((460, 240)) == (0, 255, 0, 255)


def test_raster_skips_remote_image(png400, caplog):
    caplog.set_level(logging.WARNING, logger="qrstyle")
    options = BorderOptions(thickness=40, labels={Position.TOP: Label.from_image("https://example.com/a.png")})
    bordered = apply_border(png400, options)
    assert bordered.payload.getpixel((240, 20)) == (0, 0, 0, 255)
    assert any("raster output needs inline image data" in r.getMessage() for r in caplog.records)
