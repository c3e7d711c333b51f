"""
Exception hierarchy for prelude.

Fatal errors propagate to the CLI, which reports them and exits non-zero.
Per-entry and per-file errors are built only to be logged; the scan keeps
going without the affected path.
"""


class PreludeError(Exception):
    """Base class for all prelude errors."""
    pass


class InvalidRootError(PreludeError):
    """Raised when the scan root cannot be resolved to an existing directory."""
    pass


class ConfigFileError(PreludeError):
    """Raised when an explicitly requested pattern file cannot be used."""
    pass


class GitError(PreludeError):
    """Raised when git-only mode is requested but git cannot answer."""
    pass


class TraversalEntryError(PreludeError):
    """A single directory entry could not be read during a walk."""
    pass


class FileReadError(PreludeError):
    """A selected file could not be read as UTF-8 text."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not read {path}: {reason}")


class OutputError(PreludeError):
    """Raised when the prompt cannot be written to the output file."""
    pass


class ClipboardError(PreludeError):
    """The system clipboard rejected the prompt."""
    pass
