"""qrstyle CLI — generate styled QR codes and check their scanability."""

import argparse
import asyncio
import sys
from pathlib import Path

from qrstyle import DOWNLOAD_FILENAME, MAX_LOGO_SCALE
from qrstyle.logging import audit, get_logger, setup_logging
from qrstyle.style import (
    EYE_SHAPES,
    GRADIENT_MODES,
    MODULE_SHAPES,
    PRESETS,
    LogoConfig,
    RenderStyle,
    Theme,
    apply_preset,
    parse_color,
)

log = get_logger("cli")


def _color_arg(value: str) -> str:
    """argparse type: accept any color Pillow can parse, keep the string."""
    try:
        parse_color(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    return value


def _image_file_arg(value: str) -> bytes:
    """argparse type: read an image file up front so a bad path is a usage error."""
    try:
        return Path(value).read_bytes()
    except OSError as exc:
        raise argparse.ArgumentTypeError(f"cannot read {value}: {exc.strerror or exc}") from exc


def _build_style(args) -> RenderStyle:
    """Start from the preset and layer individual field edits on top."""
    style = apply_preset(args.preset, Theme(args.theme))
    changes = {}
    if args.color:
        changes["primary_color"] = args.color
    if args.color2:
        changes["secondary_color"] = args.color2
    if args.bg:
        changes["background_color"] = args.bg
    if args.transparent:
        changes["background_transparent"] = True
    if args.shape:
        changes["module_shape"] = args.shape
    if args.eye_shape:
        changes["eye_shape"] = args.eye_shape
    if args.eye_color:
        changes["eye_color"] = args.eye_color
    if args.gradient:
        changes["gradient_mode"] = args.gradient
    return style.with_changes(**changes) if changes else style


def _build_logo(args) -> LogoConfig:
    return LogoConfig(
        image_source=args.logo,
        scale_percent=args.logo_scale,
        framed=not args.no_logo_frame,
        opacity=args.logo_opacity,
    )


def cmd_generate(args):
    """Render a QR code to a PNG file."""
    from qrstyle.advisor import shape_hint
    from qrstyle.studio import QRStudio, Status

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    style = _build_style(args)
    logo = _build_logo(args)
    studio = QRStudio(theme=Theme(args.theme), emblem_source=args.emblem)
    result = asyncio.run(studio.generate(args.text, style, logo))

    if result.status is Status.EMPTY_INPUT:
        print("Nothing to encode.")
        sys.exit(1)
    if not result.ok:
        print(f"Generation failed: {result.message or result.status.value}")
        sys.exit(1)

    result.save(output)
    print(f"Generated: {output} ({result.image.size[0]}x{result.image.size[1]})")
    print(f"  Preset: {style.preset_id}, Shape: {style.module_shape}, Eyes: {style.eye_shape}, "
          f"Gradient: {style.gradient_mode}")
    print(f"  Scanability: {result.advice.label.value} ({result.advice.reason})")
    print(f"  {shape_hint(style.module_shape)}")


def cmd_advise(args):
    """Print the scanability heuristic for a configuration without rendering."""
    from qrstyle.advisor import evaluate, shape_hint

    style = _build_style(args)
    logo = _build_logo(args)
    advice = evaluate(style, logo)

    print(f"Scanability: {advice.label.value}")
    print(f"  {advice.reason}")
    if advice.contrast_ratio is not None:
        print(f"  Contrast ratio: {advice.contrast_ratio:.2f}:1")
    print(f"  {shape_hint(style.module_shape)}")
    sys.exit(1 if advice.risky else 0)


def cmd_presets(args):
    """List the built-in presets for the chosen theme."""
    theme = Theme(args.theme)
    print(f"Presets ({theme.value} theme):")
    for preset_id in PRESETS:
        s = apply_preset(preset_id, theme)
        print(f"  {preset_id:9s} fg={s.primary_color} fg2={s.secondary_color} bg={s.background_color} "
              f"shape={s.module_shape} eyes={s.eye_shape} eye_color={s.eye_color or '-'} "
              f"gradient={s.gradient_mode}")


def _add_style_args(p):
    p.add_argument("--preset", default="classic", choices=PRESETS, help="Style preset to start from")
    p.add_argument("--color", default=None, type=_color_arg, help="Module colour (e.g. '#000000')")
    p.add_argument("--color2", default=None, type=_color_arg, help="Second gradient colour")
    p.add_argument("--bg", default=None, type=_color_arg, help="Background colour")
    p.add_argument("--transparent", action="store_true", help="Transparent background")
    p.add_argument("--shape", default=None, choices=MODULE_SHAPES, help="Data module shape")
    p.add_argument("--eye-shape", default=None, choices=EYE_SHAPES, help="Corner (eye) shape")
    p.add_argument("--eye-color", default=None, type=_color_arg, help="Corner (eye) colour")
    p.add_argument("--gradient", default=None, choices=GRADIENT_MODES, help="Module fill mode")
    p.add_argument("--logo", default=None, type=_image_file_arg, help="Path to a logo image")
    p.add_argument("--logo-scale", type=float, default=20,
                   help=f"Logo size in percent of the code (capped at {MAX_LOGO_SCALE})")
    p.add_argument("--no-logo-frame", action="store_true", help="Draw the logo without its backing")
    p.add_argument("--logo-opacity", type=float, default=1.0, help="Logo opacity 0-1")


def main(argv=None):
    parser = argparse.ArgumentParser(prog="qrstyle", description="Styled QR code generator")

    # Global logging flags
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")
    parser.add_argument("--theme", default="light", choices=[t.value for t in Theme],
                        help="Theme used for default colours")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- generate ---
    p_gen = subparsers.add_parser("generate", help="Generate a styled QR code")
    p_gen.add_argument("text", help="Text or URL to encode")
    p_gen.add_argument("-o", "--output", default=DOWNLOAD_FILENAME, help="Output PNG path")
    p_gen.add_argument("--emblem", default="image.png", help="Flag emblem image")
    _add_style_args(p_gen)

    # --- advise ---
    p_adv = subparsers.add_parser("advise", help="Check scanability of a style")
    _add_style_args(p_adv)

    # --- presets ---
    subparsers.add_parser("presets", help="List style presets")

    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else "INFO"
    setup_logging(level=level, log_file=args.log_file)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "generate": cmd_generate,
        "advise": cmd_advise,
        "presets": cmd_presets,
    }
    commands[args.command](args)
    audit("cli.done", logger=log, command=args.command)


if __name__ == "__main__":
    main()
