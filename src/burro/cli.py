"""Command-line interface for Burro."""

from __future__ import annotations

import argparse
import logging
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from burro import __version__
from burro.errors import BurroError
from burro.layout import Layout

logger = logging.getLogger(__name__)

CONFIG_NAME = "burro.toml"
DEFAULT_SUFFIX = ".pdf"


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path
    output_file: Path
    config: dict[str, Any]
    config_dir: Path
    debug: bool
    verbose: bool


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="burro",
        description="Burro typesetting language compiler",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command", required=True)

    c = sub.add_parser("compile", help="Typeset a .bur file to PDF")
    c.add_argument("input", help="Input .bur file")
    c.add_argument("-o", "--output", help="Output PDF (default: input with .pdf suffix)")
    c.add_argument(
        "--config",
        metavar="FILE",
        help=f"Config file (default: auto-discover {CONFIG_NAME})",
    )
    c.add_argument("--debug", action="store_true", help="Dump AST to stderr")
    c.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    return p


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )


def load_config(config_path: Path | None, input_dir: Path) -> tuple[dict[str, Any], Path]:
    """Load a TOML config file; returns the table and the directory paths resolve against.

    A missing auto-discovered file is an empty config; a missing file named
    with ``--config`` is an error.
    """
    path = config_path if config_path is not None else input_dir / CONFIG_NAME

    if not path.is_file():
        if config_path is not None:
            raise argparse.ArgumentTypeError(f"config file not found: {path}")
        return {}, input_dir

    try:
        with open(path, "rb") as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise argparse.ArgumentTypeError(f"invalid config file {path}: {exc}") from exc
    logger.debug("loaded config from %s", path)
    return config, path.parent


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: config file < CLI flags.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    config, config_dir = load_config(config_path, input_dir)

    suffix = config.get("output_suffix", DEFAULT_SUFFIX)
    if not isinstance(suffix, str) or not suffix.startswith("."):
        raise argparse.ArgumentTypeError(f"output_suffix must be a string starting with '.': {suffix!r}")

    output_file = Path(args.output) if args.output else input_file.with_suffix(suffix)

    return CliOptions(
        input_file=input_file,
        output_file=output_file,
        config=config,
        config_dir=config_dir,
        debug=args.debug,
        verbose=args.verbose,
    )


def compile_source(source: str, options: CliOptions) -> Layout:
    """Parse and lay out source text using the fonts named in the config."""
    from burro.debug import dump_ast
    from burro.fonts import FontMap
    from burro.layout import LayoutEngine
    from burro.parser import parse

    doc = parse(source, str(options.input_file))

    if options.debug:
        dump_ast(doc)

    fonts = FontMap.from_config(options.config, options.config_dir)
    return LayoutEngine(fonts).build(doc)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        options = resolve_options(args)
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    try:
        source = options.input_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"error: cannot read {options.input_file}: {exc}", file=sys.stderr)
        return 1

    try:
        layout = compile_source(source, options)
    except BurroError as exc:
        print(exc.format(str(options.input_file), source), file=sys.stderr)
        return 1

    from burro.pdf import write_pdf

    write_pdf(layout, options.output_file, title=options.input_file.stem)
    logger.info("wrote %s", options.output_file)
    return 0
