"""CLI entrypoint tests.

Verifies that ``prelude.cli.main`` delivers to exactly one sink, survives
clipboard failures and exits non-zero on fatal errors.
"""

from __future__ import annotations

import contextlib
import io
import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import pyperclip

from prelude import cli


@contextlib.contextmanager
def _chdir(path: Path):
    previous = Path.cwd()
    os.chdir(path)
    try:
        yield
    finally:
        os.chdir(previous)


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        base = Path(self._tmp.name).resolve()
        self.root = base / "project"
        self.cwd = base / "cwd"
        self.root.mkdir()
        self.cwd.mkdir()
        (self.root / "b.txt").write_text("beta\n", encoding="utf-8")
        (self.root / "a.txt").write_text("alpha\n", encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_output_file_leaves_clipboard_untouched(self) -> None:
        out = self.cwd / "prompt.txt"
        out.write_text("stale content that must disappear", encoding="utf-8")

        with _chdir(self.cwd), mock.patch("prelude.output.pyperclip.copy") as copy:
            cli.main(["-P", str(self.root), "-F", str(out)])

        copy.assert_not_called()
        text = out.read_text(encoding="utf-8")
        self.assertTrue(text.startswith("I want you to help me fix some issues with my code.\n"))
        self.assertIn("├── a.txt\n├── b.txt\n", text)
        self.assertNotIn("stale", text)

    def test_clipboard_used_when_no_output_file(self) -> None:
        with _chdir(self.cwd), mock.patch("prelude.output.pyperclip.copy") as copy:
            cli.main(["-P", str(self.root)])

        copy.assert_called_once()
        prompt = copy.call_args.args[0]
        self.assertIn("--- File: a.txt ---\n\nalpha\n", prompt)
        self.assertEqual(sorted(p.name for p in self.cwd.iterdir()), [])

    def test_clipboard_failure_does_not_abort(self) -> None:
        failing = mock.patch(
            "prelude.output.pyperclip.copy",
            side_effect=pyperclip.PyperclipException("no clipboard"),
        )
        # keep the assertLogs handler in place
        quiet = mock.patch("prelude.cli.setup_logging", return_value=logging.getLogger("prelude"))
        with _chdir(self.cwd), failing, quiet, self.assertLogs("prelude", level="WARNING") as logs:
            cli.main(["-P", str(self.root)])

        self.assertTrue(any(line.startswith("ERROR") and "no clipboard" in line for line in logs.output))
        self.assertTrue(any(line.startswith("WARNING") and "not delivered" in line for line in logs.output))

    def test_unlistable_root_exits_non_zero(self) -> None:
        real_iterdir = Path.iterdir
        root = self.root

        def iterdir(path):
            if path == root:
                raise PermissionError(13, "Permission denied", str(path))
            return real_iterdir(path)

        stderr = io.StringIO()
        with _chdir(self.cwd), mock.patch.object(Path, "iterdir", new=iterdir), \
                mock.patch("sys.stderr", stderr), \
                mock.patch("prelude.output.pyperclip.copy") as copy, \
                self.assertRaises(SystemExit) as exit_:
            cli.main(["-P", str(self.root)])

        self.assertEqual(exit_.exception.code, 1)
        self.assertIn("Could not list root directory", stderr.getvalue())
        copy.assert_not_called()

    def test_missing_root_exits_non_zero(self) -> None:
        stderr = io.StringIO()
        with _chdir(self.cwd), mock.patch("sys.stderr", stderr), self.assertRaises(SystemExit) as exit_:
            cli.main(["-P", str(self.root / "missing")])

        self.assertEqual(exit_.exception.code, 1)
        self.assertIn("does not exist", stderr.getvalue())

    def test_unwritable_output_exits_non_zero(self) -> None:
        blocker = self.cwd / "blocker"
        blocker.write_text("", encoding="utf-8")

        with _chdir(self.cwd), mock.patch("sys.stderr", io.StringIO()), \
                mock.patch("prelude.output.pyperclip.copy") as copy, \
                self.assertRaises(SystemExit) as exit_:
            cli.main(["-P", str(self.root), "-F", str(blocker / "out.txt")])

        self.assertEqual(exit_.exception.code, 1)
        copy.assert_not_called()

    def test_ignore_files_read_from_working_directory(self) -> None:
        (self.cwd / ".preludeignore").write_text("b.txt\n", encoding="utf-8")
        (self.root / ".preludeignore").write_text("a.txt\n", encoding="utf-8")
        out = self.cwd / "prompt.txt"

        with _chdir(self.cwd):
            cli.main(["-P", str(self.root), "-F", str(out)])

        text = out.read_text(encoding="utf-8")
        self.assertIn("├── a.txt\n", text)
        self.assertNotIn("b.txt", text)

    def test_match_and_nested_tree_flags(self) -> None:
        (self.root / "pkg").mkdir()
        (self.root / "pkg" / "mod.py").write_text("x = 1\n", encoding="utf-8")
        out = self.cwd / "prompt.txt"

        with _chdir(self.cwd):
            cli.main(["-P", str(self.root), "-F", str(out), "-M", "*.py", "--tree-style", "nested"])

        text = out.read_text(encoding="utf-8")
        self.assertIn(".\n└── pkg/\n    └── mod.py\n", text)
        self.assertNotIn("a.txt", text)


if __name__ == "__main__":
    unittest.main()
