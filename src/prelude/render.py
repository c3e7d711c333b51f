"""
Tree and prompt rendering.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .exceptions import FileReadError

log = logging.getLogger(__name__)

PROMPT_INTRO = (
    "I want you to help me fix some issues with my code.\n\n"
    "I have attached the code and file structure.\n\n"
)

TREE_STYLES = ("flat", "nested")


def build_tree(paths: Iterable[Path]) -> str:
    """One ``├──`` line per root-relative path, in the order given."""
    tree = ".\n"
    for p in paths:
        tree += f"├── {p.as_posix()}\n"
    return tree


def build_project_tree(paths: Iterable[Path]) -> str:
    """
    Return an ASCII tree (à la the Unix ``tree`` utility).

    • Shows every ancestor directory so the hierarchy is complete.
    • Directories are listed before files.
    • Works purely from the *paths* list, which must be root-relative.
    """
    tree: Dict[str, Optional[dict]] = {}

    for rel in paths:
        cur = tree
        for part in rel.parts[:-1]:
            cur = cur.setdefault(part, {})  # type: ignore[assignment]
        cur[rel.parts[-1]] = None

    lines: List[str] = ["."]

    def _walk(node: Dict[str, Optional[dict]], prefix: str = "") -> None:
        items = sorted(node.items(), key=lambda kv: (kv[1] is None, kv[0]))  # dirs first
        for idx, (name, child) in enumerate(items):
            last = idx == len(items) - 1
            connector = "└── " if last else "├── "
            lines.append(f"{prefix}{connector}{name}{'/' if child is not None else ''}")
            if child is not None:
                _walk(child, prefix + ("    " if last else "│   "))

    _walk(tree)
    return "\n".join(lines) + "\n"


def _is_binary(data: bytes) -> bool:
    return b"\0" in data


def read_text(path: Path, rel: str) -> str:
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise FileReadError(rel, str(e))
    if _is_binary(raw):
        raise FileReadError(rel, "binary content")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FileReadError(rel, f"not valid UTF-8 ({e.reason})")


def concatenate_files(files: Sequence[Path], root: Path) -> str:
    """Concatenate file bodies in the given order.

    Files that cannot be read are logged and left out; the rest keep their
    relative order.
    """
    sections: List[str] = []
    for rel in files:
        rel_str = rel.as_posix()
        try:
            content = read_text(root / rel, rel_str)
        except FileReadError as e:
            log.warning("%s", e)
            continue
        log.debug("Processing: %s", rel_str)
        sections.append(f"\n\n--- File: {rel_str} ---\n\n{content}")
    return "".join(sections)


def build_prompt(files: Sequence[Path], root: Path, tree_style: str = "flat") -> str:
    if tree_style not in TREE_STYLES:
        raise ValueError(f"Unknown tree style: {tree_style!r}")

    log.info("Building file tree...")
    tree = build_tree(files) if tree_style == "flat" else build_project_tree(files)

    log.info("Reading file contents...")
    concatenated = concatenate_files(files, root)

    log.info("Building final prompt...")
    return f"{PROMPT_INTRO}File Tree:\n{tree}\nConcatenated Files:{concatenated}"
