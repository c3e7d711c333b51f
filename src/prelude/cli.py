"""
CLI entrypoint for prelude.
"""
import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .core import (
    scan,
    InvalidRootError,
    ConfigFileError,
    GitError,
)
from .exceptions import OutputError
from .log import setup_logging
from .output import deliver
from .render import TREE_STYLES, build_prompt


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="prelude",
        description=(
            "Build an LLM prompt from a file tree and file contents, "
            "then copy it to the clipboard or save it to a file."
        ),
    )
    p.add_argument(
        "-P",
        "--path",
        type=Path,
        default=Path("."),
        help="Directory to scan (default: current directory)",
    )
    p.add_argument(
        "-F",
        "--output-file",
        type=Path,
        help="Save the prompt to this file instead of the clipboard",
    )
    p.add_argument(
        "-M",
        "--match",
        dest="match_patterns",
        action="append",
        metavar="PATTERN",
        help="Only include files matching this gitignore-style pattern (repeatable)",
    )
    p.add_argument(
        "-g",
        "--git-only",
        action="store_true",
        help="Only include files tracked by git",
    )
    p.add_argument(
        "-c",
        "--case-sensitive",
        action="store_true",
        help="Respect case sensitivity in pattern matching",
    )
    p.add_argument(
        "-H",
        "--hidden",
        action="store_true",
        help="Include hidden files and directories",
    )
    p.add_argument(
        "--config",
        type=Path,
        help="Path to a file with extra ignore patterns (one per line)",
    )
    p.add_argument(
        "--tree-style",
        choices=TREE_STYLES,
        default="flat",
        help="File tree layout (default: flat)",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Verbose logging (-vv for debug output)",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    try:
        ns = _parse_args(argv)
        log = setup_logging(ns.verbose)
        log.info("Starting file scan...")

        try:
            result = scan(
                ns.path,
                git_only=ns.git_only,
                case_sensitive=ns.case_sensitive,
                match_patterns=ns.match_patterns,
                include_hidden=ns.hidden,
                extra_config=ns.config.resolve() if ns.config else None,
            )
        except (InvalidRootError, ConfigFileError, GitError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        log.info(
            "%d entries found, %d kept after filtering, %d files selected, %d paths ignored.",
            result.unfiltered_count,
            result.filtered_count,
            len(result.files),
            len(result.ignored),
        )

        prompt = build_prompt(result.files, result.root, tree_style=ns.tree_style)

        try:
            delivered = deliver(prompt, ns.output_file)
        except OutputError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        if not delivered:
            log.warning("Prompt was not delivered; use -F to save it to a file instead.")
            return
        log.info("Process completed successfully!")

    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
