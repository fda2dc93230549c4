#!/usr/bin/env python3
"""
Fix the indentation of Lisp (e.g. Clojure) files.

Usage:
  parindent [opts] [filename ...]

  parindent src/foo.clj              # print the reindented file
  parindent --write 'src/**/*.clj'   # edit files in place
  parindent -l 'src/**/*.clj'        # list files that would change
  cat foo.clj | parindent --stdin    # read stdin, write stdout

Exit codes:
  0: Success
  1: --list-different found files that would change (or bad usage)
  2: A file could not be read, parsed or written
"""
from __future__ import annotations

import argparse
import glob
import logging
import re
import shutil
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from parindent import __version__
from parindent.indent import fix_indent
from parindent.reader import ReaderError

logger = logging.getLogger(__name__)

GLOB_MAGIC_RE = re.compile(r"[*?[]")

EXIT_OK = 0
EXIT_DIFFERENT = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="parindent",
        description="A minimal indenter for Lisp code (e.g. Clojure)",
    )
    p.add_argument("patterns", nargs="*", help="Files or glob patterns to format")
    p.add_argument("--write", action="store_true", help="Edit the file in-place. (Beware!)")
    p.add_argument("-l", "--list-different", action="store_true",
                   help="Print filenames of files that are different from Parindent formatting")
    p.add_argument("--stdin", action="store_true", help="Read input from stdin")
    p.add_argument("--backup-dir", help="With --write, copy each file here before changing it")
    p.add_argument("--verbose", action="store_true", help="Log every indentation fix")
    p.add_argument("-v", "--version", action="store_true", help="Print Parindent version")
    return p


def format_text(text: str) -> str:
    result = fix_indent(text)
    if not result.success:
        raise result.error
    return result.text


def report_error(name: str, e: ReaderError) -> None:
    print(f"{name}:{e.line_no + 1}:{e.x} - {e.message}", file=sys.stderr)


def each_filename(patterns: List[str]) -> Iterator[str]:
    for pattern in patterns:
        if not GLOB_MAGIC_RE.search(pattern):
            yield pattern
            continue
        filenames = sorted(glob.glob(pattern, recursive=True))
        if not filenames:
            logger.warning("No files matched %s", pattern)
        yield from filenames


def make_backup(path: Path, backup_dir: Path) -> Path:
    backup_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    backup_path = backup_dir / f"{path.name}.bak.{ts}"
    shutil.copy2(path, backup_path)
    return backup_path


def process_file(filename: str, args: argparse.Namespace) -> int:
    """Format one file according to args and return its exit code."""
    path = Path(filename)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Unable to read file: {filename}\n{e}", file=sys.stderr)
        return EXIT_ERROR

    start = time.monotonic()
    try:
        output = format_text(text)
    except ReaderError as e:
        report_error(filename, e)
        return EXIT_ERROR

    code = EXIT_OK
    changed = output != text
    if args.list_different and changed:
        if not args.write:
            print(filename)
        code = EXIT_DIFFERENT

    if args.write:
        ms = int((time.monotonic() - start) * 1000)
        # unchanged files are left alone so mtimes stay valid
        if not changed:
            if not args.list_different:
                print(f"{filename} {ms}ms (unchanged)")
            return code
        if args.list_different:
            print(filename)
        else:
            print(f"{filename} {ms}ms")
        try:
            if args.backup_dir:
                backup_path = make_backup(path, Path(args.backup_dir))
                logger.info("Backed up %s to %s", filename, backup_path)
            path.write_text(output, encoding="utf-8")
        except OSError as e:
            print(f"Unable to write file: {filename}\n{e}", file=sys.stderr)
            return EXIT_ERROR
    elif not args.list_different:
        sys.stdout.write(output)
    return code


def process_stdin() -> int:
    text = sys.stdin.read()
    try:
        output = format_text(text)
    except ReaderError as e:
        report_error("stdin", e)
        return EXIT_ERROR
    sys.stdout.write(output)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s - %(message)s",
    )

    if args.version:
        print(f"Parindent {__version__}")
        return EXIT_OK

    use_stdin = args.stdin or (not args.patterns and not sys.stdin.isatty())
    if not args.patterns and not use_stdin:
        parser.print_help()
        return EXIT_DIFFERENT

    if use_stdin:
        return process_stdin()

    # one bad file never stops the rest
    exit_code = EXIT_OK
    for filename in each_filename(args.patterns):
        exit_code = max(exit_code, process_file(filename, args))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
