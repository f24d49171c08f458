"""objfs CLI - browse object storage as a filesystem.

Usage:
    python -m objfs ls PATH
    python -m objfs stat PATH
    python -m objfs cat PATH [--etag ETAG]
    python -m objfs mkdir PATH

Global options --backend and --base-dir override OBJFS_BACKEND and
OBJFS_BASE_DIR.

Exit codes:
    0: Success
    1: Internal error (unexpected)
    2: Filesystem error (not found, invalid operation, backend failure)
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

from objfs.adapter import ObjectFilesystem, create_filesystem
from objfs.config import load_config
from objfs.errors import ObjfsError
from objfs.tracing import configure_tracing

logger = logging.getLogger(__name__)


def _output_json(data: dict[str, Any]) -> None:
    """Output one JSON object per line with deterministic key order."""
    print(json.dumps(data, sort_keys=True))


def _build_filesystem(args: argparse.Namespace) -> ObjectFilesystem:
    config = load_config()
    overrides: dict[str, Any] = {}
    if args.backend:
        overrides["backend"] = args.backend
    if args.base_dir:
        overrides["base_dir"] = Path(args.base_dir)
    if overrides:
        config = dataclasses.replace(config, **overrides)
    return create_filesystem(config)


async def _ls(fs: ObjectFilesystem, path: str) -> int:
    stream = await fs.readdir(path)
    failures = 0
    try:
        while True:
            try:
                entry = await anext(stream)
            except StopAsyncIteration:
                break
            except ObjfsError as e:
                failures += 1
                print(f"error: {e}", file=sys.stderr)
                continue
            _output_json(entry.to_dict())
    finally:
        await stream.aclose()
    return 2 if failures else 0


async def _stat(fs: ObjectFilesystem, path: str) -> int:
    entry = await fs.stat(path)
    _output_json(entry.to_dict())
    return 0


async def _cat(fs: ObjectFilesystem, path: str, etag: str | None) -> int:
    options = {"etag": etag} if etag else None
    meta = await fs.readfile(path, options)
    if meta.not_modified or meta.stream is None:
        print(f"not modified: {meta.etag}", file=sys.stderr)
        return 0
    out = sys.stdout.buffer
    async for chunk in meta.stream:
        out.write(chunk)
    out.flush()
    return 0


async def _mkdir(fs: ObjectFilesystem, path: str) -> int:
    await fs.mkdir(path)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="objfs",
        description="objfs - filesystem view of object storage",
    )
    parser.add_argument(
        "--backend",
        choices=["filesystem", "s3"],
        help="Storage backend (overrides OBJFS_BACKEND)",
    )
    parser.add_argument(
        "--base-dir",
        metavar="PATH",
        help="Base directory for the filesystem backend (overrides OBJFS_BASE_DIR)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    ls_parser = subparsers.add_parser("ls", help="List a directory, one JSON entry per line")
    ls_parser.add_argument("path", nargs="?", default="/", help="Virtual path (default: /)")

    stat_parser = subparsers.add_parser("stat", help="Describe a path as JSON")
    stat_parser.add_argument("path", help="Virtual path")

    cat_parser = subparsers.add_parser("cat", help="Write object content to stdout")
    cat_parser.add_argument("path", help="Virtual path of the object")
    cat_parser.add_argument(
        "--etag",
        help="Skip the download if the object's entry tag still matches",
    )

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a directory marker")
    mkdir_parser.add_argument("path", help="Virtual path of the new directory")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Internal error (unexpected)
        2: Filesystem error
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    configure_tracing()

    try:
        fs = _build_filesystem(args)
        if args.command == "ls":
            return asyncio.run(_ls(fs, args.path))
        if args.command == "stat":
            return asyncio.run(_stat(fs, args.path))
        if args.command == "cat":
            return asyncio.run(_cat(fs, args.path, args.etag))
        if args.command == "mkdir":
            return asyncio.run(_mkdir(fs, args.path))
    except ObjfsError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        logger.exception("Unexpected error")
        print(f"internal error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
