"""qrstyle CLI: render styled QR codes from the command line."""

import argparse
import json
import sys
from pathlib import Path

from qrstyle.border import BorderOptions, Label, Position, RingOptions, apply_border
from qrstyle.corners import CornerDotType, CornerSquareType
from qrstyle.dots import DotType
from qrstyle.encoders import available_formats, get_encoder
from qrstyle.errors import ConfigError, ConfigIssue, QRStyleError
from qrstyle.logging import audit, get_logger, setup_logging
from qrstyle.matrix import ModuleRole, classify_matrix, matrix_from_data
from qrstyle.options import ImageOptions, StylingOptions
from qrstyle.scene import assemble_scene
from qrstyle.shape import ShapeType

log = get_logger("cli")

ROLE_GLYPHS = {
    ModuleRole.FINDER_OUTER: "O",
    ModuleRole.FINDER_INNER: "@",
    ModuleRole.SEPARATOR: "-",
    ModuleRole.HIDDEN: "x",
}


def _section(raw: dict, name: str) -> dict:
    """Config block to apply flag overrides to; malformed blocks are left for validation."""
    block = raw.setdefault(name, {})
    return block if isinstance(block, dict) else {}


def _load_config(path: str | None) -> dict:
    if not path:
        return {}
    try:
        raw = json.loads(Path(path).read_text())
    except json.JSONDecodeError as exc:
        raise ConfigError([ConfigIssue("config", f"invalid JSON in {path}: {exc}")]) from exc
    if not isinstance(raw, dict):
        raise ConfigError([ConfigIssue("config", f"top level of {path} must be a JSON object")])
    return raw


def _options_from_args(args) -> StylingOptions:
    """Start from the ``--config`` JSON (if any) and apply flag overrides."""
    raw = _load_config(args.config)

    for key in ("size", "margin"):
        if getattr(args, key) is not None:
            raw[key] = getattr(args, key)
    if args.shape is not None:
        raw["shape"] = args.shape

    for section, flag in (("dots", args.dot_type),
                          ("corners_square", args.corner_square_type),
                          ("corners_dot", args.corner_dot_type)):
        if flag is not None:
            _section(raw, section)["type"] = flag
    if args.color is not None:
        for section in ("dots", "corners_square", "corners_dot"):
            block = _section(raw, section)
            block.pop("gradient", None)
            block["color"] = args.color
    if args.background is not None:
        raw["background"] = {"color": None if args.background == "none" else args.background}

    image_options = _section(raw, "image_options")
    if args.logo_size is not None:
        image_options["size_ratio"] = args.logo_size
    if args.logo_margin is not None:
        image_options["margin_modules"] = args.logo_margin
    if args.keep_dots:
        image_options["hide_background_dots"] = False

    image = Path(args.logo).read_bytes() if args.logo else None
    return StylingOptions.from_dict(raw, image=image)


def _border_from_args(args) -> BorderOptions | None:
    if not args.border:
        return None
    labels = {}
    for position in Position:
        text = getattr(args, f"border_{position.value}")
        image = getattr(args, f"border_{position.value}_image")
        if image:
            labels[position] = Label.from_image(Path(image).read_bytes(), args.label_style)
        elif text:
            labels[position] = Label(text, args.label_style)
    inner = RingOptions(args.border_inner, args.border_inner_color) if args.border_inner else None
    outer = RingOptions(args.border_outer, args.border_outer_color) if args.border_outer else None
    return BorderOptions(
        thickness=args.border,
        color=args.border_color,
        roundness=args.border_round,
        labels=labels,
        dasharray=args.border_dash,
        inner=inner,
        outer=outer,
    )


def cmd_render(args):
    """Render a styled QR code to a file."""
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    fmt = args.format or output.suffix.lstrip(".").lower() or "svg"

    options = _options_from_args(args)
    border = _border_from_args(args)
    encoder = get_encoder(fmt)

    modules = matrix_from_data(args.data, ecc=args.ecc, version=args.version, mask=args.mask)
    scene = assemble_scene(classify_matrix(modules), options)
    artifact = encoder.encode(scene)
    if border is not None:
        artifact = apply_border(artifact, border)
    artifact.save(output)

    print(f"Rendered: {output} ({artifact.width}x{artifact.height}, {fmt})")
    print(f"  Groups: {len(scene.groups)}, dots: {options.dots.type.value}, shape: {options.shape.value}")


def cmd_roles(args):
    """Print the role map of the encoded matrix."""
    matrix = classify_matrix(matrix_from_data(args.data, ecc=args.ecc, version=args.version))
    if args.logo_size is not None or args.logo_margin is not None:
        from qrstyle.logo import reserve_logo
        defaults = ImageOptions()
        image_options = ImageOptions(
            size_ratio=defaults.size_ratio if args.logo_size is None else args.logo_size,
            margin_modules=defaults.margin_modules if args.logo_margin is None else args.logo_margin,
        )
        matrix = reserve_logo(matrix, image_options).matrix

    for row in range(matrix.size):
        line = []
        for col in range(matrix.size):
            role = matrix.role(row, col)
            if role is ModuleRole.DATA:
                line.append("#" if matrix.is_dark(row, col) else ".")
            else:
                line.append(ROLE_GLYPHS[role])
        print(" ".join(line))

    print(f"Matrix {matrix.size}x{matrix.size}")
    for role in ModuleRole:
        print(f"  {role.name:<13s}{matrix.count(role):5d} ({matrix.count(role, active=True)} dark)")


def _ratio(value: str) -> float:
    ratio = float(value)
    if not 0 < ratio <= 1:
        raise argparse.ArgumentTypeError(f"{value} is not in (0, 1]")
    return ratio


def _add_matrix_args(p):
    p.add_argument("data", help="Data to encode")
    p.add_argument("-e", "--ecc", default="Q", choices=["L", "M", "Q", "H"], help="Error correction level")
    p.add_argument("-v", "--version", type=int, default=None, help="QR version 1-40 (auto if omitted)")
    p.add_argument("--logo-size", type=_ratio, default=None, help="Logo side as a fraction of the matrix")
    p.add_argument("--logo-margin", type=float, default=None, help="Clearance around the logo, in modules")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrstyle", description="Styled QR code renderer")

    # Global logging flags
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- render ---
    p_render = subparsers.add_parser("render", help="Render a styled QR code")
    _add_matrix_args(p_render)
    p_render.add_argument("-o", "--output", default="output/qr.svg", help="Output file path")
    p_render.add_argument("-f", "--format", default=None, choices=available_formats(),
                          help="Output format (default: from the output suffix)")
    p_render.add_argument("-m", "--mask", type=int, default=None, help="Mask pattern 0-7")
    p_render.add_argument("--config", default=None, help="JSON file with styling options")
    p_render.add_argument("--size", type=int, default=None, help="Output size in pixels")
    p_render.add_argument("--margin", type=int, default=None, help="Quiet zone in modules")
    p_render.add_argument("--shape", default=None, choices=[s.value for s in ShapeType])
    p_render.add_argument("--dot-type", default=None, choices=[t.value for t in DotType])
    p_render.add_argument("--corner-square-type", default=None, choices=[t.value for t in CornerSquareType])
    p_render.add_argument("--corner-dot-type", default=None, choices=[t.value for t in CornerDotType])
    p_render.add_argument("--color", default=None, help="Foreground color (dots and corners)")
    p_render.add_argument("--background", default=None, help="Background color, or 'none'")
    p_render.add_argument("--logo", default=None, help="Path to a logo image")
    p_render.add_argument("--keep-dots", action="store_true", help="Keep data dots under the logo")

    # Border
    p_render.add_argument("--border", type=float, default=0, help="Border ring thickness in pixels")
    p_render.add_argument("--border-color", default="#000000", help="Border ring color")
    p_render.add_argument("--border-round", type=float, default=0.0, help="Ring roundness 0-1")
    p_render.add_argument("--border-dash", default=None, help="Stroke dash pattern, e.g. '5,5' (SVG only)")
    for position in Position:
        p_render.add_argument(f"--border-{position.value}", default=None, metavar="TEXT",
                              help=f"Label on the {position.value} of the ring")
        p_render.add_argument(f"--border-{position.value}-image", default=None, metavar="PATH",
                              help=f"Image on the {position.value} of the ring (replaces the text label)")
    p_render.add_argument("--label-style", default=None, help="CSS style for border labels")
    p_render.add_argument("--border-inner", type=float, default=0, metavar="THICKNESS",
                          help="Extra ring along the inside edge of the border")
    p_render.add_argument("--border-inner-color", default="#000000", help="Inner ring color")
    p_render.add_argument("--border-outer", type=float, default=0, metavar="THICKNESS",
                          help="Extra ring along the outside edge of the border")
    p_render.add_argument("--border-outer-color", default="#000000", help="Outer ring color")

    # --- roles ---
    p_roles = subparsers.add_parser("roles", help="Print the module role map")
    _add_matrix_args(p_roles)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging before any command runs
    level = "DEBUG" if args.verbose else "INFO"
    setup_logging(level=level, log_file=args.log_file)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "render": cmd_render,
        "roles": cmd_roles,
    }
    try:
        commands[args.command](args)
    except ConfigError as exc:
        print("Invalid configuration:", file=sys.stderr)
        for issue in exc.issues:
            print(f"  {issue.field}: {issue.message}", file=sys.stderr)
        sys.exit(2)
    except QRStyleError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    audit("cli.done", logger=log, command=args.command)


if __name__ == "__main__":
    main()
