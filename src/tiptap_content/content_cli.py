"""
CLI commands for inspecting and checking Tiptap documents.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import load_config
from .exceptions import MalformedDocument, UnknownExtensionError
from .extensions import available_extensions
from .service import TiptapService


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _service(args) -> TiptapService:
    return TiptapService(load_config(args.config))


def _read_document(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def cmd_stats(args):
    """Print document statistics as JSON."""
    stats = _service(args).get_stats(_read_document(args.file))
    print(json.dumps(stats, indent=2))
    return 0


def cmd_text(args):
    """Print the plain text of a document."""
    print(_service(args).to_text(_read_document(args.file)))
    return 0


def cmd_validate(args):
    """Validate a document against configured and command-line rules."""
    rules = {}
    if args.max_length is not None:
        rules["max_length"] = args.max_length
    if args.max_depth is not None:
        rules["max_depth"] = args.max_depth
    if args.allowed_tags:
        rules["allowed_tags"] = [t.strip() for t in args.allowed_tags.split(",") if t.strip()]

    report = _service(args).check(_read_document(args.file), rules)
    if report.valid:
        print("✓ Content is valid")
        return 0
    print(f"✗ Content failed validation: {', '.join(report.failed_rules)}")
    return 1


def cmd_sanitize(args):
    """Sanitize a document and write it to stdout or a file."""
    extensions = args.extension or None
    sanitized = _service(args).sanitize(_read_document(args.file), extensions)
    output = json.dumps(json.loads(sanitized), indent=2)
    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        print(f"✓ Sanitized document written to: {args.output}")
    else:
        print(output)
    return 0


def cmd_extensions(args):
    """List registered extensions."""
    configured = load_config(args.config).extensions
    print("Available extensions:")
    for name in available_extensions():
        marker = "✓" if name in configured else "○"
        default_marker = " (configured)" if name in configured else ""
        print(f"  {marker} {name}{default_marker}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Tiptap document statistics, validation and sanitization",
        prog="tiptap-content"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "-c", "--config",
        help="JSON configuration file (default: $TIPTAP_CONFIG_FILE)"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands"
    )

    stats_parser = subparsers.add_parser("stats", help="Show document statistics")
    stats_parser.add_argument("file", help="Document JSON file ('-' for stdin)")
    stats_parser.set_defaults(func=cmd_stats)

    text_parser = subparsers.add_parser("text", help="Extract plain text")
    text_parser.add_argument("file", help="Document JSON file ('-' for stdin)")
    text_parser.set_defaults(func=cmd_text)

    validate_parser = subparsers.add_parser("validate", help="Validate a document")
    validate_parser.add_argument("file", help="Document JSON file ('-' for stdin)")
    validate_parser.add_argument("--max-length", type=int, help="Maximum text length")
    validate_parser.add_argument("--max-depth", type=int, help="Maximum nesting depth")
    validate_parser.add_argument(
        "--allowed-tags",
        help="Comma separated node types, e.g. doc,paragraph,text"
    )
    validate_parser.set_defaults(func=cmd_validate)

    sanitize_parser = subparsers.add_parser(
        "sanitize",
        help="Remove nodes, marks and attributes outside an extension set"
    )
    sanitize_parser.add_argument("file", help="Document JSON file ('-' for stdin)")
    sanitize_parser.add_argument(
        "-e", "--extension",
        action="append",
        help="Extension to allow (repeatable; configured defaults when omitted)"
    )
    sanitize_parser.add_argument("-o", "--output", help="Write result to this file")
    sanitize_parser.set_defaults(func=cmd_sanitize)

    extensions_parser = subparsers.add_parser("extensions", help="List extensions")
    extensions_parser.set_defaults(func=cmd_extensions)

    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    setup_logging(args.verbose)
    try:
        return args.func(args)
    except (MalformedDocument, UnknownExtensionError) as e:
        print(f"✗ {e}")
        return 1
    except OSError as e:
        print(f"✗ Cannot read input: {e}")
        return 1
    except ValueError as e:
        print(f"✗ Invalid configuration: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
