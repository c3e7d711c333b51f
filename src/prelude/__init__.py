"""
Prelude - build an LLM prompt from a project's files.

This package scans a directory tree, filters it through gitignore-style
ignore files (and optionally git's tracked-file list), and concatenates the
surviving files together with a file tree into a single prompt that is copied
to the clipboard or written to a file.
"""

__version__ = "0.2.0"
