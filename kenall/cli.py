"""Command-line interface for kenall.

    kenall normalize [path|-] [-o out] [--no-trim] [--no-width] [--no-utf8]

Reads KEN_ALL.CSV from a file or stdin and writes the normalized table to
stdout or the -o path.
"""

from __future__ import annotations
import argparse
import logging
import sys

from . import config
from .errors import KenAllError
from .normalize import NormalizeOptions, normalize_bytes


def _read_bytes(path: str) -> bytes:
    if path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as fh:
        return fh.read()


def _write_bytes(path: str, data: bytes) -> None:
    if path == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    with open(path, "wb") as fh:
        fh.write(data)


def _normalize(args: argparse.Namespace) -> int:
    options = NormalizeOptions(
        trim=args.trim,
        width=args.width,
        utf8=args.utf8,
        source_encoding=args.source_encoding,
    )
    try:
        data, report = normalize_bytes(_read_bytes(args.path), options)
        _write_bytes(args.output, data)
    except (KenAllError, OSError) as ex:
        sys.stderr.write(f"error: {ex}\n")
        return 2

    summary = report["summary"]
    logging.getLogger(__name__).info(
        "%s -> %s: %d rows read, %d rows written",
        args.path,
        args.output,
        summary["rows_read"],
        summary["rows_written"],
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="kenall", description="Tools for the Japan Post KEN_ALL.CSV zip code table.")
    sub = p.add_subparsers(dest="command", required=True)

    n = sub.add_parser("normalize", help="Normalize input (file or standard input if no argument)")
    n.add_argument("path", nargs="?", default="-", help="Input file path or '-' for stdin")
    n.add_argument("-o", "--output", default="-", help="Save to this path instead of standard output")
    n.add_argument("--trim", action=argparse.BooleanOptionalAction, default=config.DEFAULT_TRIM,
                   help="Trim spaces from each field")
    n.add_argument("--width", action=argparse.BooleanOptionalAction, default=config.DEFAULT_WIDTH,
                   help="Convert halfwidth kana into fullwidth, fullwidth ASCII into halfwidth")
    n.add_argument("--utf8", action=argparse.BooleanOptionalAction, default=config.DEFAULT_UTF8,
                   help="Write UTF-8 instead of Shift_JIS (cp932)")
    n.add_argument("--source-encoding", default=config.DEFAULT_SOURCE_ENCODING,
                   help="Input encoding, or 'auto' to detect it")
    n.set_defaults(func=_normalize)

    args = p.parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
