"""Encoder registry: scenes (and bordered artifacts) to concrete formats.

Every format is a separate encoder class registered by name. ``svg`` is
written with ``svgwrite``; ``png``, ``jpeg``, ``webp`` and ``pdf`` are
rasterized with Pillow (numpy does the gradient fills). Asking for any other
format raises ``UnsupportedFormatError`` at call time.
"""

import base64
import io
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import numpy as np
import svgwrite
from PIL import Image, ImageChops, ImageDraw, ImageFont

from qrstyle.errors import UnsupportedFormatError
from qrstyle.geometry import Circle, Frame, GroupRole
from qrstyle.logging import audit, get_logger, trace
from qrstyle.logo import fit_logo, image_bytes, image_href, open_logo
from qrstyle.paint import (
    TRANSPARENT,
    ResolvedLinear,
    ResolvedRadial,
    ResolvedSolid,
    color_to_rgba,
)

log = get_logger("encoders")


@dataclass(frozen=True)
class Artifact:
    """A rendered output.

    ``payload`` is SVG markup (``str``) for vector formats and an RGBA
    ``PIL.Image`` for raster ones; ``to_bytes`` serializes either.
    """
    format: str
    width: int
    height: int
    payload: object

    def to_bytes(self) -> bytes:
        if isinstance(self.payload, str):
            return self.payload.encode("utf-8")
        return get_encoder(self.format).serialize(self.payload)

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.write_bytes(self.to_bytes())
        audit("artifact.saved", logger=log, path=str(path), format=self.format,
              size=f"{self.width}x{self.height}")
        return path


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_REGISTRY: dict[str, Callable[[], "object"]] = {}


def register_encoder(name: str, factory: Callable[[], "object"]) -> None:
    """Register (or replace) the encoder factory for format *name*."""
    _REGISTRY[name.lower()] = factory


def available_formats() -> list[str]:
    return sorted(_REGISTRY)


def get_encoder(fmt: str):
    """Instantiate the encoder for *fmt* (``"jpg"`` is accepted for jpeg)."""
    key = fmt.lower()
    if key == "jpg":
        key = "jpeg"
    factory = _REGISTRY.get(key)
    if factory is None:
        raise UnsupportedFormatError(fmt, available_formats())
    return factory()


def _output_size(scene) -> tuple[int, int]:
    """Scene bounds fitted into a ``scene.size`` square, aspect preserved."""
    longest = max(scene.width, scene.height)
    return (max(1, round(scene.size * scene.width / longest)),
            max(1, round(scene.size * scene.height / longest)))


def _paint_runs(scene):
    """Consecutive non-logo groups sharing one paint, in paint order."""
    runs: list[tuple[object, list]] = []
    for group in scene.groups:
        if group.role is GroupRole.LOGO:
            continue
        if runs and runs[-1][0] == group.paint:
            runs[-1][1].append(group)
        else:
            runs.append((group.paint, [group]))
    return runs


# ---------------------------------------------------------------------------
# SVG
# ---------------------------------------------------------------------------

def _svg_color(color: str) -> tuple[str, float | None]:
    """#RRGGBBAA -> ("#RRGGBB", opacity); opaque colors carry no opacity."""
    if len(color) == 9:
        return color[:7], round(int(color[7:], 16) / 255, 4)
    return color, None


class SvgEncoder:
    format = "svg"

    @trace
    def encode(self, scene) -> Artifact:
        width, height = _output_size(scene)
        x0, y0, x1, y1 = scene.bounds
        dwg = svgwrite.Drawing(size=(width, height), debug=False)
        dwg.viewbox(x0, y0, x1 - x0, y1 - y0)

        gradient_ids: dict[object, str] = {}
        for paint, groups in _paint_runs(scene):
            fill = self._fill(dwg, paint, gradient_ids)
            if fill is None:
                continue
            g = dwg.g(**fill)
            for group in groups:
                for primitive in group.geometry:
                    g.add(self._element(dwg, primitive))
            dwg.add(g)

        for group in scene.groups_for(GroupRole.LOGO):
            if scene.logo is None:
                continue
            box = group.geometry[0]
            href = image_href(scene.logo)
            dwg.add(dwg.image(href=href, insert=(box.x, box.y), size=(box.width, box.height),
                              preserveAspectRatio="xMidYMid meet"))

        markup = dwg.tostring()
        audit("encoder.encoded", logger=log, format=self.format, size=f"{width}x{height}",
              gradients=len(gradient_ids), bytes=len(markup))
        return Artifact(self.format, width, height, markup)

    def _fill(self, dwg, paint, gradient_ids) -> dict | None:
        if isinstance(paint, ResolvedSolid):
            if paint.color == TRANSPARENT:
                return None
            color, opacity = _svg_color(paint.color)
            return {"fill": color} if opacity is None else {"fill": color, "fill_opacity": opacity}

        if paint not in gradient_ids:
            gid = f"gradient-{len(gradient_ids)}"
            if isinstance(paint, ResolvedLinear):
                grad = dwg.linearGradient(start=(paint.x1, paint.y1), end=(paint.x2, paint.y2),
                                          id=gid, gradientUnits="userSpaceOnUse")
            else:
                grad = dwg.radialGradient(center=(paint.cx, paint.cy), r=paint.r,
                                          id=gid, gradientUnits="userSpaceOnUse")
            for offset, color in paint.stops:
                color, opacity = _svg_color(color)
                grad.add_stop_color(offset=offset, color=color, opacity=opacity)
            dwg.defs.add(grad)
            gradient_ids[paint] = gid
        return {"fill": f"url(#{gradient_ids[paint]})"}

    @staticmethod
    def _element(dwg, primitive):
        if isinstance(primitive, Circle):
            return dwg.circle(center=(primitive.cx, primitive.cy), r=primitive.r)
        if isinstance(primitive, Frame):
            return dwg.path(d=primitive.path_data(), fill_rule="evenodd")
        if primitive.is_plain:
            return dwg.rect(insert=(primitive.x, primitive.y), size=(primitive.width, primitive.height))
        return dwg.path(d=primitive.path_data())

    @trace
    def compose_border(self, artifact: Artifact, layout) -> Artifact:
        """Embed the original SVG as an image and draw the rings around it."""
        width, height = round(layout.width), round(layout.height)
        dwg = svgwrite.Drawing(size=(width, height), debug=False)
        dwg.viewbox(0, 0, layout.width, layout.height)

        href = "data:image/svg+xml;base64," + base64.b64encode(artifact.to_bytes()).decode("ascii")
        dwg.add(dwg.image(href=href, insert=layout.offset, size=(artifact.width, artifact.height)))

        for ring in layout.rings:
            rect = ring.rect
            extra = {"stroke_dasharray": ring.dasharray} if ring.dasharray else {}
            dwg.add(dwg.rect(insert=(rect.x, rect.y), size=(rect.width, rect.height),
                             rx=ring.corner_radius, ry=ring.corner_radius,
                             fill="none", stroke=ring.color, stroke_width=ring.thickness, **extra))

        for label in layout.labels:
            if label.image is not None:
                half = label.size / 2
                extra = {"style": label.style} if label.style else {}
                dwg.add(dwg.image(href=image_href(label.image), insert=(label.x - half, label.y - half),
                                  size=(label.size, label.size),
                                  preserveAspectRatio="xMidYMid meet", **extra))
                continue
            if label.arc:
                path = dwg.path(d=label.arc, id=label.arc_id, fill="none")
                dwg.defs.add(path)
                text = dwg.text("", style=label.style)
                text.add(dwg.textPath(path, label.text, startOffset="50%",
                                      text_anchor="middle", dominant_baseline="central"))
            else:
                extra = {"transform": f"rotate({label.rotation},{label.x},{label.y})"} if label.rotation else {}
                text = dwg.text(label.text, insert=(label.x, label.y), style=label.style,
                                text_anchor="middle", dominant_baseline="middle", **extra)
            dwg.add(text)

        return Artifact(self.format, width, height, dwg.tostring())


# ---------------------------------------------------------------------------
# Raster (Pillow)
# ---------------------------------------------------------------------------

SUPERSAMPLE = 4

_PIL_FORMATS = {"png": "PNG", "jpeg": "JPEG", "webp": "WEBP", "pdf": "PDF"}


def _stop_arrays(stops) -> tuple[np.ndarray, np.ndarray]:
    offsets = np.array([o for o, _ in stops], dtype=np.float64)
    colors = np.array([color_to_rgba(c) for _, c in stops], dtype=np.float64)
    return offsets, colors


def _gradient_fill(t: np.ndarray, stops) -> Image.Image:
    """Map a per-pixel parameter grid (0..1) through the color stops."""
    offsets, colors = _stop_arrays(stops)
    channels = [np.interp(t, offsets, colors[:, i]) for i in range(4)]
    rgba = np.clip(np.stack(channels, axis=-1).round(), 0, 255).astype(np.uint8)
    return Image.fromarray(rgba, "RGBA")


class RasterEncoder:
    """Rasterize scenes with Pillow at ``SUPERSAMPLE``x, then downscale."""

    def __init__(self, fmt: str):
        self.format = fmt

    @trace
    def encode(self, scene) -> Artifact:
        width, height = _output_size(scene)
        big = (width * SUPERSAMPLE, height * SUPERSAMPLE)
        x0, y0 = scene.bounds[0], scene.bounds[1]
        scale = big[0] / scene.width

        def to_px(x: float, y: float) -> tuple[float, float]:
            return ((x - x0) * scale, (y - y0) * scale)

        canvas = Image.new("RGBA", big, (0, 0, 0, 0))
        for paint, groups in _paint_runs(scene):
            if isinstance(paint, ResolvedSolid) and color_to_rgba(paint.color)[3] == 0:
                continue
            mask = Image.new("L", big, 0)
            draw = ImageDraw.Draw(mask)
            for group in groups:
                for primitive in group.geometry:
                    self._draw(draw, primitive, to_px)
            layer = self._fill(paint, big, to_px, scale)
            layer.putalpha(ImageChops.multiply(layer.getchannel("A"), mask))
            canvas.alpha_composite(layer)

        img = canvas.resize((width, height), Image.LANCZOS)

        for group in scene.groups_for(GroupRole.LOGO):
            if scene.logo is None:
                continue
            box = group.geometry[0]
            bx, by = to_px(box.x, box.y)
            bx, by = int(bx / SUPERSAMPLE), int(by / SUPERSAMPLE)
            bw = max(1, int(box.width * scale / SUPERSAMPLE))
            bh = max(1, int(box.height * scale / SUPERSAMPLE))
            logo, (dx, dy) = fit_logo(open_logo(scene.logo), bw, bh)
            img.paste(logo, (bx + dx, by + dy), logo)

        audit("encoder.encoded", logger=log, format=self.format, size=f"{width}x{height}",
              layers=len(_paint_runs(scene)))
        return Artifact(self.format, width, height, img)

    @staticmethod
    def _draw(draw: ImageDraw.ImageDraw, primitive, to_px) -> None:
        if isinstance(primitive, Frame):
            draw.polygon([to_px(*p) for p in primitive.outer.outline()], fill=255)
            draw.polygon([to_px(*p) for p in primitive.inner.outline()], fill=0)
        else:
            draw.polygon([to_px(*p) for p in primitive.outline()], fill=255)

    @staticmethod
    def _fill(paint, size: tuple[int, int], to_px, scale: float) -> Image.Image:
        if isinstance(paint, ResolvedSolid):
            return Image.new("RGBA", size, color_to_rgba(paint.color))

        w, h = size
        xs, ys = np.meshgrid(np.arange(w) + 0.5, np.arange(h) + 0.5)
        if isinstance(paint, ResolvedRadial):
            cx, cy = to_px(paint.cx, paint.cy)
            r = paint.r * scale
            t = np.hypot(xs - cx, ys - cy) / r if r > 0 else np.zeros_like(xs)
        else:
            px1, py1 = to_px(paint.x1, paint.y1)
            px2, py2 = to_px(paint.x2, paint.y2)
            dx, dy = px2 - px1, py2 - py1
            length_sq = dx * dx + dy * dy
            if length_sq == 0:
                t = np.zeros_like(xs)
            else:
                t = ((xs - px1) * dx + (ys - py1) * dy) / length_sq
        return _gradient_fill(np.clip(t, 0.0, 1.0), paint.stops)

    def serialize(self, img: Image.Image) -> bytes:
        pil_format = _PIL_FORMATS[self.format]
        if pil_format in ("JPEG", "PDF"):
            flat = Image.new("RGB", img.size, (255, 255, 255))
            flat.paste(img, mask=img.getchannel("A"))
            img = flat
        buf = io.BytesIO()
        img.save(buf, format=pil_format)
        return buf.getvalue()

    @trace
    def compose_border(self, artifact: Artifact, layout) -> Artifact:
        """Paste the original onto a larger canvas and draw the rings.

        Dash patterns and text-on-path are vector-only; labels are drawn
        straight (rotated on the sides) at their anchors.
        """
        width, height = round(layout.width), round(layout.height)
        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        ox, oy = (round(v) for v in layout.offset)
        canvas.paste(artifact.payload, (ox, oy))

        draw = ImageDraw.Draw(canvas)
        for ring in layout.rings:
            self._stroke_ring(draw, ring)

        for label in layout.labels:
            if label.image is not None:
                self._draw_image_label(canvas, label)
            else:
                self._draw_label(canvas, label)

        return Artifact(self.format, width, height, canvas)

    @staticmethod
    def _stroke_ring(draw: ImageDraw.ImageDraw, ring) -> None:
        if ring.thickness <= 0:
            return
        # Pillow strokes inward from the box, so the box is the ring's outer edge
        rect, half = ring.rect, ring.thickness / 2
        draw.rounded_rectangle(
            [rect.x - half, rect.y - half, rect.x + rect.width + half - 1, rect.y + rect.height + half - 1],
            radius=ring.corner_radius + half,
            outline=color_to_rgba(ring.color),
            width=max(1, round(ring.thickness)),
        )

    @staticmethod
    def _draw_image_label(canvas: Image.Image, label) -> None:
        data = image_bytes(label.image)
        if data is None:
            log.warning("Skipping %s border image: raster output needs inline image data",
                        label.position.value)
            return
        side = max(1, round(label.size))
        img, (dx, dy) = fit_logo(open_logo(data), side, side)
        x0, y0 = round(label.x - side / 2), round(label.y - side / 2)
        canvas.paste(img, (x0 + dx, y0 + dy), img)

    @staticmethod
    def _draw_label(canvas: Image.Image, label) -> None:
        fill, font_size = _parse_label_style(label.style)
        font = ImageFont.load_default(size=font_size)
        left, top, right, bottom = font.getbbox(label.text)
        text_img = Image.new("RGBA", (max(1, math.ceil(right - left)), max(1, math.ceil(bottom - top))), (0, 0, 0, 0))
        ImageDraw.Draw(text_img).text((-left, -top), label.text, font=font, fill=fill)
        if label.rotation:
            # PIL rotates counter-clockwise, SVG clockwise
            text_img = text_img.rotate(-label.rotation, expand=True)
        dest = (round(label.x - text_img.width / 2), round(label.y - text_img.height / 2))
        canvas.paste(text_img, dest, text_img)


_STYLE_FILL = re.compile(r"(?:^|;)\s*fill\s*:\s*([^;]+)")
_STYLE_SIZE = re.compile(r"font-size\s*:\s*([\d.]+)")


def _parse_label_style(style: str) -> tuple[tuple[int, int, int, int], float]:
    """Pull fill color and font size out of a CSS-like style string."""
    fill = (0, 0, 0, 255)
    match = _STYLE_FILL.search(style)
    if match:
        try:
            fill = color_to_rgba(match.group(1).strip())
        except ValueError:
            log.warning("Ignoring unknown label fill %r", match.group(1).strip())
    size_match = _STYLE_SIZE.search(style)
    font_size = float(size_match.group(1)) if size_match else 14.0
    return fill, font_size


register_encoder("svg", SvgEncoder)
for _fmt in _PIL_FORMATS:
    register_encoder(_fmt, lambda fmt=_fmt: RasterEncoder(fmt))
