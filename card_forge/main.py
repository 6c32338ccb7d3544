"""Command-line entry point for card-forge."""

import argparse
import io
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from card_forge.character_cards import (
    NO_CARD_DATA,
    CardCodecError,
    CharacterCardExporter,
    CharacterCardImporter,
    FormatDetector,
    PNGMetadataHandler,
    SpecVersion,
    create_placeholder_image,
)
from card_forge.config import AppConfig, ConfigLoader, ConfigLoadError

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False, log_file: Optional[Path] = None):
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO

    # Force UTF-8 encoding for stdout/stderr on Windows
    if sys.platform == 'win32':
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')

    # Logs go to stderr so card JSON on stdout stays clean
    handlers = [logging.StreamHandler(sys.stderr)]

    file_handler = None
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )

    # Only our loggers get the verbose level, not PIL
    app_logger = logging.getLogger('card_forge')
    app_logger.setLevel(level)
    logging.getLogger('PIL').setLevel(logging.WARNING)

    logger.debug(f"Logging configured: level={level}, log_file={log_file}")
    return file_handler, log_file


def _version_arg(value: str) -> SpecVersion:
    try:
        return SpecVersion(value.lower())
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid version {value!r} (choose v1, v2 or v3)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="card-forge",
        description="Read, convert and embed character cards in PNG images.",
    )
    parser.add_argument("--config", type=Path, help="Path to YAML config file.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Print the card embedded in a PNG.")
    extract.add_argument("image", type=Path, help="PNG card image.")
    extract.add_argument("-o", "--output", type=Path, help="Write card JSON here instead of stdout.")

    embed = subparsers.add_parser("embed", help="Embed a card into a PNG.")
    embed.add_argument("card", type=Path, help="Card source (.json file or PNG card).")
    embed.add_argument("-i", "--image", type=Path, help="PNG to embed into (placeholder if omitted).")
    embed.add_argument("-v", "--version", type=_version_arg, help="Target format (v1, v2, v3).")
    embed.add_argument("-o", "--output", type=Path, required=True, help="Output PNG path.")

    convert = subparsers.add_parser("convert", help="Convert a card to JSON in another version.")
    convert.add_argument("card", type=Path, help="Card source (.json file or PNG card).")
    convert.add_argument("-v", "--version", type=_version_arg, help="Target format (v1, v2, v3).")
    convert.add_argument("-o", "--output", type=Path, help="Write JSON here instead of stdout.")

    placeholder = subparsers.add_parser("placeholder", help="Write a blank placeholder card image.")
    placeholder.add_argument("-o", "--output", type=Path, required=True, help="Output PNG path.")

    return parser


def _write_text(text: str, output: Optional[Path]) -> None:
    if output is None:
        print(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {output}")


def cmd_extract(args, config: AppConfig) -> int:
    png_data = PNGMetadataHandler.extract_image(args.image)
    extracted = CharacterCardImporter.extract(png_data)
    if extracted is None:
        print(NO_CARD_DATA)
        return 1

    print(f"Detected format: {FormatDetector.get_format_name(extracted.detected_version)}", file=sys.stderr)
    _write_text(json.dumps(extracted.card, indent=config.export.json_indent, ensure_ascii=False), args.output)
    return 0


def cmd_embed(args, config: AppConfig) -> int:
    try:
        result = CharacterCardImporter.import_file(args.card)
    except CardCodecError as e:
        print(f"Error importing file: {e}")
        return 1

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    version = args.version or config.export.default_version
    image = PNGMetadataHandler.extract_image(args.image) if args.image else None
    try:
        png_data = CharacterCardExporter.export_png(
            result.card_data,
            version,
            image=image,
            placeholder_size=(config.placeholder.width, config.placeholder.height),
        )
    except CardCodecError as e:
        print(f"Error exporting PNG: {e}")
        return 1

    PNGMetadataHandler.save_image(png_data, args.output)
    print(f"PNG exported ({version.value.upper()}): {args.output}")
    return 0


def cmd_convert(args, config: AppConfig) -> int:
    try:
        result = CharacterCardImporter.import_file(args.card)
    except CardCodecError as e:
        print(f"Error importing file: {e}")
        return 1

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    version = args.version or config.export.default_version
    try:
        text = CharacterCardExporter.to_json(result.card_data, version, indent=config.export.json_indent)
    except CardCodecError as e:
        print(f"Error exporting JSON: {e}")
        return 1
    _write_text(text, args.output)
    return 0


def cmd_placeholder(args, config: AppConfig) -> int:
    png_data = create_placeholder_image(config.placeholder.width, config.placeholder.height)
    PNGMetadataHandler.save_image(png_data, args.output)
    print(f"Wrote {args.output}")
    return 0


COMMANDS = {
    "extract": cmd_extract,
    "embed": cmd_embed,
    "convert": cmd_convert,
    "placeholder": cmd_placeholder,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Run the card-forge CLI."""
    args = build_parser().parse_args(argv)

    try:
        config = ConfigLoader().load_config(args.config)
    except ConfigLoadError as e:
        print(e, file=sys.stderr)
        return 2

    setup_logging(debug=args.debug or config.debug, log_file=config.log_file)

    try:
        return COMMANDS[args.command](args, config)
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
