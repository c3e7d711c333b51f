"""
Core logic for prelude: ignore-aware discovery.

The root is walked twice. The unfiltered walk applies only git-only mode and
the hidden-file rule; the filtered walk also applies every registered ignore
source and the filename match patterns. The difference between the two is the
set of paths excluded by ignore rules, which is only logged.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .exceptions import (
    ConfigFileError,
    GitError,
    InvalidRootError,
    PreludeError,
    TraversalEntryError,
)
from .ignore import RuleSet, RuleSource, build_rule_set

log = logging.getLogger(__name__)

__all__ = [
    "ConfigFileError",
    "EntryKind",
    "GitError",
    "InvalidRootError",
    "PreludeError",
    "ScanResult",
    "WalkEntry",
    "collect_files",
    "reconcile",
    "resolve_root",
    "scan",
    "walk",
]


class EntryKind(enum.Enum):
    FILE = "file"
    DIR = "dir"
    OTHER = "other"


@dataclass(frozen=True)
class WalkEntry:
    path: Path
    kind: EntryKind

    def relative_to(self, root: Path) -> Path:
        return self.path.relative_to(root)


@dataclass
class ScanResult:
    root: Path
    files: List[Path] = field(default_factory=list)
    ignored: List[Path] = field(default_factory=list)
    unfiltered_count: int = 0
    filtered_count: int = 0


def resolve_root(root: Path) -> Path:
    try:
        resolved = root.resolve(strict=True)
    except FileNotFoundError:
        raise InvalidRootError(f"Root directory '{root}' does not exist")
    except (OSError, RuntimeError) as e:
        raise InvalidRootError(f"Could not resolve root path '{root}': {e}")
    if not resolved.is_dir():
        raise InvalidRootError(f"Root path '{resolved}' is not a directory")
    return resolved


def _classify(path: Path) -> EntryKind:
    # symlinks are never followed
    if path.is_symlink():
        return EntryKind.OTHER
    if path.is_dir():
        return EntryKind.DIR
    if path.is_file():
        return EntryKind.FILE
    return EntryKind.OTHER


def _report(err: TraversalEntryError) -> None:
    log.warning("%s", err)


# Directory walker
def walk(root: Path, rules: RuleSet, apply_ignores: bool = True) -> Iterator[WalkEntry]:
    """Yield every entry below *root* that survives *rules*, depth first.

    Order follows filesystem enumeration and is not stable; callers sort.
    Excluded directories are pruned. Entries that cannot be read are logged
    and skipped; a root that cannot be listed raises :class:`InvalidRootError`.
    """
    yield from _walk_dir(root, root, rules, apply_ignores, ())


def _walk_dir(
    directory: Path,
    root: Path,
    rules: RuleSet,
    apply_ignores: bool,
    nested: Sequence[RuleSource],
) -> Iterator[WalkEntry]:
    if rules.git_only:
        gitignore = directory / ".gitignore"
        if gitignore.is_file():
            try:
                nested = (*nested, rules.nested_source(gitignore))
            except (OSError, UnicodeDecodeError) as e:
                _report(TraversalEntryError(f"Could not read '{gitignore}': {e}"))

    try:
        children = list(directory.iterdir())
    except OSError as e:
        if directory == root:
            raise InvalidRootError(f"Could not list root directory '{root}': {e}")
        _report(TraversalEntryError(f"Could not list '{directory}': {e}"))
        return

    for child in children:
        if child.name == ".git" or rules.is_hidden(child):
            continue
        try:
            kind = _classify(child)
        except OSError as e:
            _report(TraversalEntryError(f"Could not stat '{child}': {e}"))
            continue

        is_dir = kind is EntryKind.DIR
        rel = child.relative_to(root).as_posix()
        if rules.is_untracked(rel, is_dir):
            continue
        if rules.is_ignored(child, is_dir, nested, apply_ignores):
            continue
        if apply_ignores and kind is EntryKind.FILE and not rules.matches_filename(rel):
            continue

        yield WalkEntry(child, kind)
        if is_dir:
            yield from _walk_dir(child, root, rules, apply_ignores, nested)


# Reconciliation
def reconcile(
    unfiltered: Sequence[WalkEntry],
    filtered: Sequence[WalkEntry],
    root: Path,
) -> List[Path]:
    """Root-relative paths present in *unfiltered* but not in *filtered*."""
    kept = {entry.relative_to(root) for entry in filtered}
    return [
        rel
        for rel in (entry.relative_to(root) for entry in unfiltered)
        if rel not in kept
    ]


# Collection
def collect_files(entries: Sequence[WalkEntry], root: Path) -> List[Path]:
    """Regular files only, root-relative, sorted by POSIX path string."""
    files = [e.relative_to(root) for e in entries if e.kind is EntryKind.FILE]
    return sorted(files, key=lambda p: p.as_posix())


def scan(
    root: Path,
    *,
    git_only: bool = False,
    case_sensitive: bool = False,
    match_patterns: Optional[Sequence[str]] = None,
    include_hidden: bool = False,
    extra_config: Optional[Path] = None,
    ignore_dir: Optional[Path] = None,
) -> ScanResult:
    """Resolve *root*, walk it twice and return the kept and ignored paths.

    *ignore_dir* is where ``.gitignore`` and ``.preludeignore`` are looked
    up; it defaults to the current working directory.
    """
    root = resolve_root(root)
    log.info("Scanning directory: %s", root)

    rules = build_rule_set(
        root,
        git_only=git_only,
        case_sensitive=case_sensitive,
        include_hidden=include_hidden,
        match_patterns=match_patterns,
        extra_config=extra_config,
        ignore_dir=ignore_dir,
    )

    log.info("Collecting files...")
    unfiltered = list(walk(root, rules, apply_ignores=False))
    filtered = list(walk(root, rules, apply_ignores=True))

    ignored = reconcile(unfiltered, filtered, root)
    if ignored:
        log.debug("Ignored files:")
        for rel in sorted(ignored, key=lambda p: p.as_posix()):
            log.debug("├── %s", rel.as_posix())

    files = collect_files(filtered, root)
    for rel in files:
        log.debug("Reading: %s", rel.as_posix())

    return ScanResult(
        root=root,
        files=files,
        ignored=ignored,
        unfiltered_count=len(unfiltered),
        filtered_count=len(filtered),
    )
