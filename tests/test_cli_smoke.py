from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


def _run_cli(args: list[str], *, cwd: Path) -> subprocess.CompletedProcess[str]:
    repo_root = Path(__file__).resolve().parents[1]

    env = dict(os.environ)
    env.pop("BLOG_API_BASE_URL", None)
    existing_pp = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = f"{repo_root}{os.pathsep}{existing_pp}" if existing_pp else str(repo_root)

    return subprocess.run(
        [sys.executable, "-m", "blog_feed", *args],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
    )


class TestCliSmoke(unittest.TestCase):
    def test_offline_browse_prints_filtered_page(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            proc = _run_cli(
                ["browse", "--offline", "--query", "replication", "--sort", "popular"],
                cwd=Path(td),
            )

        self.assertEqual(proc.returncode, 0, msg=proc.stderr)
        lines = proc.stdout.splitlines()
        self.assertIn("total_matched=1", lines)
        self.assertIn("total_pages=1", lines)
        self.assertIn("page=1", lines)
        self.assertTrue(any("Viral Replication" in ln for ln in lines))

    def test_offline_browse_by_category(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            proc = _run_cli(["browse", "--offline", "--category", "bacteriology"], cwd=Path(td))

        self.assertEqual(proc.returncode, 0, msg=proc.stderr)
        items = [ln for ln in proc.stdout.splitlines() if ln.startswith("- ")]
        self.assertEqual(len(items), 2)
        self.assertIn("Biofilms", items[0])

    def test_page_must_be_positive(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            proc = _run_cli(["browse", "--offline", "--page", "0"], cwd=Path(td))
        self.assertEqual(proc.returncode, 2)

    def test_missing_config_exits_2_and_logs(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            log_path = Path(td) / "events.jsonl"
            proc = _run_cli(
                [
                    "--config",
                    str(Path(td) / "missing.yaml"),
                    "--log",
                    str(log_path),
                    "browse",
                    "--offline",
                ],
                cwd=Path(td),
            )

            self.assertEqual(proc.returncode, 2, msg=proc.stderr)
            self.assertIn("not found", proc.stderr.lower())
            self.assertTrue(log_path.exists())

            events = [
                json.loads(ln).get("event")
                for ln in log_path.read_text(encoding="utf-8").splitlines()
                if ln.strip()
            ]

        self.assertIn("command_started", events)
        self.assertIn("command_failed", events)


if __name__ == "__main__":
    unittest.main()
