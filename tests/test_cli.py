"""CLI entrypoint tests: argument handling, startup failures, and session launch."""

from __future__ import annotations

import io
import logging
import os
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ftdv import __version__, cli
from ftdv.persistence import ReviewStore


class _CliTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.tmp = Path(self._tmp.name).resolve()

        ftdv_logger = logging.getLogger("ftdv")
        saved = (list(ftdv_logger.handlers), ftdv_logger.level, ftdv_logger.propagate)

        def restore_logger() -> None:
            handlers, level, propagate = saved
            ftdv_logger.handlers[:] = handlers
            ftdv_logger.setLevel(level)
            ftdv_logger.propagate = propagate

        self.addCleanup(restore_logger)

        self.state_path = self.tmp / "state" / "reviewed.json"
        patches = [
            mock.patch("ftdv.config.CONFIG_PATH", self.tmp / "no-config.yaml"),
            mock.patch("ftdv.persistence.STATE_PATH", self.state_path),
        ]
        for patcher in patches:
            patcher.start()
            self.addCleanup(patcher.stop)

    def _run(self, argv: list[str], cwd: Path | None = None) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        code = 0
        with mock.patch("sys.stdout", stdout), mock.patch("sys.stderr", stderr):
            try:
                cli.main(argv, cwd=cwd)
            except SystemExit as exc:
                code = exc.code if isinstance(exc.code, int) else 1
        return code, stdout.getvalue(), stderr.getvalue()


class CliArgumentTests(_CliTestCase):
    def test_version(self) -> None:
        code, out, _err = self._run(["--version"])
        self.assertEqual(code, 0)
        self.assertIn(__version__, out)

    def test_usage_errors_exit_with_status_two(self) -> None:
        for argv in (
            ["a", "b", "c"],
            ["--cached", "a", "b"],
            ["--cached", "--worktree"],
            ["--worktree", "main"],
            ["--timeout", "0"],
            ["--timeout", "soon"],
            ["--style", "no-such-style"],
            ["--bogus"],
        ):
            with self.subTest(argv=argv):
                code, _out, err = self._run(argv)
                self.assertEqual(code, 2)
                self.assertIn("usage:", err)

    def test_completions(self) -> None:
        code, out, _err = self._run(["completions", "bash"])
        self.assertEqual(code, 0)
        self.assertIn("complete -F _ftdv ftdv", out)
        self.assertIn("git for-each-ref --format='%(refname:short)'", out)

        _code, zsh, _err = self._run(["completions", "zsh"])
        self.assertTrue(zsh.startswith("#compdef ftdv"))
        self.assertIn("'--config[configuration file path]:config:_files'", zsh)

        _code, fish, _err = self._run(["completions", "fish"])
        self.assertIn("complete -c ftdv -l timeout -r", fish)

    def test_unknown_completion_shell(self) -> None:
        code, _out, _err = self._run(["completions", "tcsh"])
        self.assertEqual(code, 2)

    def test_explicit_missing_config_is_fatal(self) -> None:
        code, _out, err = self._run(["--config", str(self.tmp / "missing.yaml")])
        self.assertEqual(code, 1)
        self.assertIn("ftdv: error: cannot read config file", err)

    def test_unreadable_path_pair_is_fatal(self) -> None:
        left = self.tmp / "left.txt"
        right = self.tmp / "right.txt"
        left.write_text("old\n", encoding="utf-8")
        right.write_text("new\n", encoding="utf-8")
        with mock.patch("ftdv.git.filecmp.cmp", side_effect=PermissionError(13, "Permission denied")):
            code, _out, err = self._run([str(left), str(right)], cwd=self.tmp)
        self.assertEqual(code, 1)
        self.assertIn("ftdv: error: cannot compare", err)

    @unittest.skipIf(shutil.which("git") is None, "git is required for repository discovery")
    def test_outside_a_repository(self) -> None:
        with mock.patch.dict(os.environ, {"GIT_CEILING_DIRECTORIES": str(self.tmp.parent)}):
            code, _out, err = self._run([], cwd=self.tmp)
        self.assertEqual(code, 1)
        self.assertIn("not a git repository", err)


@unittest.skipIf(shutil.which("git") is None, "git is required for CLI repository tests")
class CliRepositoryTests(_CliTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.root = self.tmp / "repo"
        self.root.mkdir()
        for args in (
            ["init", "-q"],
            ["config", "user.email", "tests@example.com"],
            ["config", "user.name", "Tests"],
            ["config", "commit.gpgsign", "false"],
        ):
            subprocess.run(["git", *args], cwd=self.root, check=True)
        (self.root / "src").mkdir()
        (self.root / "src" / "app.py").write_text("x = 1\n", encoding="utf-8")
        (self.root / "README.md").write_text("hello\n", encoding="utf-8")
        subprocess.run(["git", "add", "-A"], cwd=self.root, check=True)
        subprocess.run(["git", "commit", "-q", "-m", "initial"], cwd=self.root, check=True)

    def _modify(self) -> None:
        (self.root / "src" / "app.py").write_text("x = 2\n", encoding="utf-8")
        (self.root / "README.md").write_text("hello again\n", encoding="utf-8")

    def test_clean_repository_has_no_differences(self) -> None:
        code, out, _err = self._run([], cwd=self.root)
        self.assertEqual(code, 0)
        self.assertEqual(out, "No differences found.\n")

    def test_unknown_ref_is_named(self) -> None:
        code, _out, err = self._run(["HEAD", "does-not-exist"], cwd=self.root)
        self.assertEqual(code, 1)
        self.assertIn("'does-not-exist'", err)

    def test_requires_interactive_terminal(self) -> None:
        self._modify()
        with mock.patch("ftdv.cli._is_interactive", return_value=False), mock.patch("ftdv.cli.run_session") as session:
            code, _out, err = self._run([], cwd=self.root)

        self.assertEqual(code, 1)
        self.assertIn("interactive terminal", err)
        session.assert_not_called()

    def test_launches_session_with_tree_and_reviewed_state(self) -> None:
        self._modify()
        ReviewStore(self.state_path).save(str(self.root), {"README.md", "stale.py"})

        with mock.patch("ftdv.cli._is_interactive", return_value=True), mock.patch("ftdv.cli.run_session") as session:
            code, _out, _err = self._run(["--timeout", "2.5", "--style", "monokai"], cwd=self.root)

        self.assertEqual(code, 0)
        session.assert_called_once()
        app = session.call_args.args[0]
        self.assertEqual(app.tree.file_paths(), ["src/app.py", "README.md"])
        self.assertEqual(app.tree.reviewed_paths(), {"README.md"})
        self.assertEqual(app.context.identity, str(self.root))
        self.assertEqual(app.context.timeout_seconds, 2.5)
        self.assertEqual(app.context.style, "monokai")
        self.assertEqual(app.state.status_message, "")

    def test_staged_mode(self) -> None:
        self._modify()
        subprocess.run(["git", "add", "README.md"], cwd=self.root, check=True)

        with mock.patch("ftdv.cli._is_interactive", return_value=True), mock.patch("ftdv.cli.run_session") as session:
            self._run(["--cached"], cwd=self.root)

        app = session.call_args.args[0]
        self.assertEqual(app.tree.file_paths(), ["README.md"])

    def test_config_warning_reaches_status_bar(self) -> None:
        self._modify()
        config_path = self.tmp / "config.yaml"
        config_path.write_text("theme:\n  colors:\n    border: notacolor\n", encoding="utf-8")

        with mock.patch("ftdv.cli._is_interactive", return_value=True), mock.patch("ftdv.cli.run_session") as session:
            code, _out, err = self._run(["--config", str(config_path)], cwd=self.root)

        self.assertEqual(code, 0)
        app = session.call_args.args[0]
        self.assertTrue(app.state.status_message.startswith("Warning: "))
        self.assertIn("notacolor", app.state.status_message)
        self.assertEqual(err.count("notacolor"), 1)


if __name__ == "__main__":
    unittest.main()
