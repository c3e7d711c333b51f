"""
Ignore-rule sources and git integration.

Every pattern file is compiled with ``pathspec`` (gitignore syntax) into a
:class:`RuleSource` anchored at a directory. Within a group of sources the
last matching pattern decides, so a later ``!pattern`` re-includes what an
earlier pattern excluded. A :class:`RuleSet` checks git's rule files first;
the ambient and user-supplied files can only exclude more.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Sequence

import pathspec

from .exceptions import ConfigFileError, GitError

log = logging.getLogger(__name__)

GENERIC_IGNORE_FILE = ".gitignore"
TOOL_IGNORE_FILE = ".preludeignore"


def _read_pattern_lines(path: Path) -> List[str]:
    with path.open("r", encoding="utf-8") as fh:
        return [
            ln.rstrip("\r\n")
            for ln in fh
            if ln.strip() and not ln.lstrip().startswith("#")
        ]


def compile_patterns(lines: Iterable[str], case_sensitive: bool = False) -> "pathspec.PathSpec":
    if not case_sensitive:
        lines = [ln.lower() for ln in lines]
    return pathspec.PathSpec.from_lines("gitignore", lines)


@dataclass(frozen=True)
class RuleSource:
    """One compiled pattern file.

    ``anchor`` is the directory the patterns are relative to: the directory
    holding a ``.gitignore`` for git's own files, the scan root for the
    ambient and user-supplied files.
    """

    origin: Path
    anchor: Path
    spec: "pathspec.PathSpec"
    case_sensitive: bool = False

    @classmethod
    def from_lines(
        cls,
        lines: Iterable[str],
        origin: Path,
        anchor: Path,
        case_sensitive: bool = False,
    ) -> "RuleSource":
        return cls(origin, anchor, compile_patterns(lines, case_sensitive), case_sensitive)

    @classmethod
    def from_file(cls, origin: Path, anchor: Path, case_sensitive: bool = False) -> "RuleSource":
        return cls.from_lines(_read_pattern_lines(origin), origin, anchor, case_sensitive)

    def decide(self, path: Path, is_dir: bool) -> Optional[bool]:
        """Return True (ignore), False (re-include) or None (no pattern matched)."""
        try:
            rel = path.relative_to(self.anchor).as_posix()
        except ValueError:
            return None
        if rel == ".":
            return None
        if is_dir:
            rel += "/"
        if not self.case_sensitive:
            rel = rel.lower()

        verdict: Optional[bool] = None
        for pattern in self.spec.patterns:
            if pattern.include is None:
                continue
            if pattern.match_file(rel) is not None:
                verdict = pattern.include
        return verdict


# Ambient and user-supplied pattern files
def load_ignore_sources(
    anchor: Path,
    base_dir: Optional[Path] = None,
    case_sensitive: bool = False,
) -> List[RuleSource]:
    """Register ``.gitignore`` and ``.preludeignore`` found in *base_dir*.

    *base_dir* defaults to the current working directory, not the scan root.
    The tool-specific file is registered last so its patterns win.
    """
    base_dir = Path.cwd() if base_dir is None else base_dir
    sources: List[RuleSource] = []
    for name in (GENERIC_IGNORE_FILE, TOOL_IGNORE_FILE):
        candidate = base_dir / name
        if not candidate.is_file():
            continue
        try:
            sources.append(RuleSource.from_file(candidate, anchor, case_sensitive))
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Could not read %s: %s", candidate, e)
            continue
        log.info("Found %s - applying ignore patterns", name)
    return sources


def load_extra_patterns(
    config_path: Path,
    anchor: Path,
    case_sensitive: bool = False,
) -> RuleSource:
    if not config_path.exists():
        raise ConfigFileError(f"Config file '{config_path}' does not exist")
    if not config_path.is_file():
        raise ConfigFileError(f"'{config_path}' is not a file")
    try:
        source = RuleSource.from_file(config_path, anchor, case_sensitive)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(f"Could not read config file '{config_path}': {e}")
    log.info("Loaded extra patterns from %s", config_path)
    return source


# Git integration
def _git(args: Sequence[str], cwd: Path, check: bool = True) -> Optional[bytes]:
    if shutil.which("git") is None:
        raise GitError("Git-only mode requires 'git' on PATH")
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        raise GitError(f"Could not run git in '{cwd}': {e}")
    if proc.returncode != 0:
        if not check:
            return None
        detail = proc.stderr.decode("utf-8", errors="replace").strip()
        raise GitError(f"'git {' '.join(args)}' failed in '{cwd}': {detail}")
    return proc.stdout


def _global_excludes_file(root: Path) -> Path:
    configured = _git(["config", "--path", "--get", "core.excludesFile"], root, check=False)
    if configured and configured.strip():
        return Path(configured.decode("utf-8").strip()).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "git" / "ignore"


def _ancestor_dirs(root: Path, toplevel: Path) -> List[Path]:
    """Directories from *toplevel* down to, but excluding, *root*."""
    parts = root.relative_to(toplevel).parts
    return [toplevel.joinpath(*parts[:i]) for i in range(len(parts))]


@dataclass(frozen=True)
class GitContext:
    """What git knows about the work tree holding the scan root.

    ``tracked`` and ``tracked_dirs`` hold root-relative POSIX paths.
    """

    toplevel: Path
    tracked: FrozenSet[str]
    tracked_dirs: FrozenSet[str]
    sources: List[RuleSource] = field(default_factory=list)

    def is_tracked(self, rel: str, is_dir: bool) -> bool:
        return rel in (self.tracked_dirs if is_dir else self.tracked)


def load_git_context(root: Path, case_sensitive: bool = False) -> GitContext:
    """Query git for tracked files and its global and exclude rule files."""
    top = _git(["rev-parse", "--show-toplevel"], root).decode("utf-8").strip()
    toplevel = Path(top).resolve()

    listing = _git(["ls-files", "-z", "--cached"], root)
    tracked = {
        raw.decode("utf-8", errors="replace")
        for raw in listing.split(b"\x00")
        if raw
    }
    tracked_dirs = set()
    for rel in tracked:
        for parent in Path(rel).parents:
            if parent == Path("."):
                break
            tracked_dirs.add(parent.as_posix())
    log.debug("git reports %d tracked files under %s", len(tracked), root)

    # lowest precedence first
    exclude = _git(["rev-parse", "--git-path", "info/exclude"], root).decode("utf-8").strip()
    candidates = [
        (_global_excludes_file(root), toplevel),
        (root / exclude, toplevel),
    ]
    candidates.extend(
        (d / GENERIC_IGNORE_FILE, d) for d in _ancestor_dirs(root, toplevel)
    )

    sources: List[RuleSource] = []
    for candidate, anchor in candidates:
        if not candidate.is_file():
            continue
        try:
            sources.append(RuleSource.from_file(candidate, anchor, case_sensitive))
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Could not read %s: %s", candidate, e)

    return GitContext(
        toplevel=toplevel,
        tracked=frozenset(tracked),
        tracked_dirs=frozenset(tracked_dirs),
        sources=sources,
    )


# Rule set
def _last_verdict(sources: Sequence[RuleSource], path: Path, is_dir: bool) -> Optional[bool]:
    verdict: Optional[bool] = None
    for source in sources:
        decision = source.decide(path, is_dir)
        if decision is not None:
            verdict = decision
    return verdict


@dataclass
class RuleSet:
    """Everything the walker needs to decide whether to keep a path."""

    root: Path
    case_sensitive: bool = False
    include_hidden: bool = False
    sources: List[RuleSource] = field(default_factory=list)
    match_spec: Optional["pathspec.PathSpec"] = None
    git: Optional[GitContext] = None

    @property
    def git_only(self) -> bool:
        return self.git is not None

    def add_source(self, source: RuleSource) -> None:
        self.sources.append(source)

    def nested_source(self, gitignore: Path) -> RuleSource:
        return RuleSource.from_file(gitignore, gitignore.parent, self.case_sensitive)

    def is_hidden(self, path: Path) -> bool:
        return not self.include_hidden and path.name.startswith(".")

    def is_ignored(
        self,
        path: Path,
        is_dir: bool,
        nested: Sequence[RuleSource] = (),
        apply_ignores: bool = True,
    ) -> bool:
        """Evaluate git's rule files and per-directory ``.gitignore`` files,
        then, when *apply_ignores* is set, the registered sources.

        The registered sources can only add exclusions: a ``!pattern`` in
        them never re-includes a path git's rules already ignore, so the
        filtered walk stays a subset of the unfiltered one.
        """
        git_chain: List[RuleSource] = []
        if self.git is not None:
            git_chain.extend(self.git.sources)
        git_chain.extend(nested)
        if _last_verdict(git_chain, path, is_dir):
            return True
        if not apply_ignores:
            return False
        return bool(_last_verdict(self.sources, path, is_dir))

    def is_untracked(self, rel: str, is_dir: bool) -> bool:
        return self.git is not None and not self.git.is_tracked(rel, is_dir)

    def matches_filename(self, rel: str) -> bool:
        if self.match_spec is None:
            return True
        return self.match_spec.match_file(rel if self.case_sensitive else rel.lower())


def build_rule_set(
    root: Path,
    *,
    git_only: bool = False,
    case_sensitive: bool = False,
    include_hidden: bool = False,
    match_patterns: Optional[Sequence[str]] = None,
    extra_config: Optional[Path] = None,
    ignore_dir: Optional[Path] = None,
) -> RuleSet:
    rules = RuleSet(
        root=root,
        case_sensitive=case_sensitive,
        include_hidden=include_hidden,
    )
    for source in load_ignore_sources(root, ignore_dir, case_sensitive):
        rules.add_source(source)
    if extra_config is not None:
        rules.add_source(load_extra_patterns(extra_config, root, case_sensitive))
    if match_patterns:
        rules.match_spec = compile_patterns(match_patterns, case_sensitive)
    if git_only:
        log.info("Git-only mode enabled - only including tracked files")
        rules.git = load_git_context(root, case_sensitive)
    if case_sensitive:
        log.info("Case-sensitive matching enabled")
    return rules
