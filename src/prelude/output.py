"""
Prompt delivery: an output file or the system clipboard, never both.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pyperclip

from .exceptions import ClipboardError, OutputError

log = logging.getLogger(__name__)


def write_prompt(prompt: str, out_path: Path) -> Path:
    """Write *prompt* to *out_path*, truncating it. Returns the resolved path."""
    try:
        out_path = out_path.resolve()
    except (OSError, RuntimeError) as e:
        raise OutputError(f"Could not resolve output path '{out_path}': {e}")

    out_dir = out_path.parent
    if not out_dir.exists():
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(f"Could not create output directory '{out_dir}': {e}")

    try:
        with out_path.open("w", encoding="utf-8", newline="\n") as out_fh:
            out_fh.write(prompt)
    except OSError as e:
        raise OutputError(f"Could not write to output file '{out_path}': {e}")
    return out_path


def copy_to_clipboard(prompt: str) -> None:
    try:
        pyperclip.copy(prompt)
    except pyperclip.PyperclipException as e:
        raise ClipboardError(f"Failed to copy prompt to clipboard: {e}")


def deliver(prompt: str, output_file: Optional[Path] = None) -> bool:
    """Send *prompt* to *output_file* if given, else to the clipboard.

    Output file failures raise :class:`OutputError`. Clipboard failures are
    logged and reported by returning False.
    """
    if output_file is not None:
        log.info("Saving to file: %s", output_file)
        written = write_prompt(prompt, output_file)
        log.info("Successfully saved prompt to %s", written)
        return True

    log.info("Copying prompt to clipboard...")
    try:
        copy_to_clipboard(prompt)
    except ClipboardError as e:
        log.error("%s", e)
        return False
    log.info("Prompt copied to clipboard successfully!")
    return True
