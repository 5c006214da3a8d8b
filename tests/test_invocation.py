"""Tests for mapping tool configs onto invocation plans."""

from __future__ import annotations

import unittest
from pathlib import Path
from unittest import mock

from ftdv.config import BuiltinTool, ExternalDiffTool, PagerTool, SystemPagerTool
from ftdv.git import RefRange, WorkingTree
from ftdv.invocation import (
    BuiltinPlan,
    DiffRequest,
    ExternalDiffPlan,
    PipelinePlan,
    plan_invocation,
    tool_environment,
)
from ftdv.tree_model import DiffStatus

ROOT = Path("/repo")


def _request(path: str = "src/app.py", **kwargs) -> DiffRequest:
    return DiffRequest(target=WorkingTree(), root=ROOT, path=path, **kwargs)


class PlanInvocationTests(unittest.TestCase):
    def test_pager_plan_pipes_git_diff_into_expanded_command(self) -> None:
        plan = plan_invocation(_request(), PagerTool("delta -w={{diffAreaWidth}}", "always"), 100)

        self.assertIsInstance(plan, PipelinePlan)
        self.assertEqual(plan.sink_command, "delta -w=80")
        self.assertFalse(plan.sink_shell)
        self.assertEqual(
            plan.source_argv,
            ("git", "-C", "/repo", "diff", "--color=always", "--", "src/app.py"),
        )
        self.assertEqual(plan.env["TERM"], "xterm-256color")
        self.assertEqual(plan.env["COLUMNS"], "100")
        self.assertEqual(plan.env["LINES"], "50")

    def test_color_arg_reaches_git(self) -> None:
        plan = plan_invocation(_request(), PagerTool("cat", "never"), 80)
        self.assertIn("--color=never", plan.source_argv)

    def test_ref_range_arguments(self) -> None:
        request = DiffRequest(target=RefRange("v1", "v2"), root=ROOT, path="x.py")
        plan = plan_invocation(request, PagerTool("cat"), 80)

        self.assertEqual(plan.source_argv[-5:], ("--color=always", "v1", "v2", "--", "x.py"))

    def test_builtin_plan_requests_plain_git_diff(self) -> None:
        plan = plan_invocation(_request(), BuiltinTool(), 80)

        self.assertEqual(plan, BuiltinPlan(("git", "-C", "/repo", "diff", "--no-color", "--", "src/app.py")))

    def test_builtin_plan_with_style_requests_plain_output(self) -> None:
        plan = plan_invocation(_request(), BuiltinTool(), 80, style="monokai")

        self.assertIsInstance(plan, BuiltinPlan)
        self.assertEqual(plan.style, "monokai")
        self.assertIn("--no-color", plan.source_argv)

    def test_system_pager_runs_through_shell(self) -> None:
        with mock.patch("ftdv.invocation.system_pager_command", return_value="less -R") as pager:
            plan = plan_invocation(_request(), SystemPagerTool(), 80)

        pager.assert_called_once_with(ROOT)
        self.assertEqual(plan.sink_command, "less -R")
        self.assertTrue(plan.sink_shell)

    def test_system_pager_unset_shows_git_output(self) -> None:
        with mock.patch("ftdv.invocation.system_pager_command", return_value=""):
            plan = plan_invocation(_request(), SystemPagerTool(), 80)

        self.assertIsNone(plan.sink_command)

    def test_external_plan_reads_both_sides(self) -> None:
        sides = {"before": b"old\n", "after": b"new\n"}

        def fake_read_side(target, root, path, side, timeout_seconds):
            self.assertEqual((root, path), (ROOT, "src/app.py"))
            return sides[side]

        with mock.patch("ftdv.invocation.read_side", side_effect=fake_read_side):
            plan = plan_invocation(
                _request(),
                ExternalDiffTool("difft --width={{width}}"),
                120,
                timeout_seconds=3.0,
            )

        self.assertIsInstance(plan, ExternalDiffPlan)
        self.assertEqual(plan.command, "difft --width=120")
        self.assertEqual(plan.basename, "app.py")
        self.assertEqual((plan.before, plan.after), (b"old\n", b"new\n"))
        self.assertEqual(plan.env["COLUMNS"], "120")

    def test_untracked_file_diffs_against_null_device(self) -> None:
        plan = plan_invocation(_request("new.txt", status=DiffStatus.UNTRACKED), PagerTool("cat"), 80)
        self.assertIn("--no-index", plan.source_argv)

    def test_directories_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            plan_invocation(_request("src", is_directory=True), BuiltinTool(), 80)

    def test_environment_width_is_at_least_one(self) -> None:
        self.assertEqual(tool_environment(0)["COLUMNS"], "1")


if __name__ == "__main__":
    unittest.main()
