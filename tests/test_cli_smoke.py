from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


def _run_cli(*args: str, env_extra: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    repo_root = Path(__file__).resolve().parents[1]

    env = dict(os.environ)
    env.pop("PIXELFED_ACCESS_TOKEN", None)
    env.update(env_extra or {})
    existing_pp = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = f"{repo_root}{os.pathsep}{existing_pp}" if existing_pp else str(repo_root)

    return subprocess.run(
        [sys.executable, "-m", "pixelfree", *args],
        cwd=repo_root,
        env=env,
        capture_output=True,
        text=True,
    )


class TestCLISmoke(unittest.TestCase):
    def test_offline_tag_query(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg_path = Path(td) / "config.yaml"
            cfg_path.write_text("{}", encoding="utf-8")
            log_path = Path(td) / "events.jsonl"

            proc = _run_cli(
                "--config", str(cfg_path), "--offline", "--log", str(log_path),
                "query", "--tag", "otters", "--limit", "5",
            )

            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            photos = json.loads(proc.stdout)
            self.assertEqual([p["id"] for p in photos], ["1:m1", "3:m4"])

            records = [json.loads(ln) for ln in log_path.read_text(encoding="utf-8").splitlines()]
            events = [r["event"] for r in records]
            self.assertIn("config_loaded", events)
            loaded = records[events.index("config_loaded")]
            self.assertEqual(len(loaded["data"]["config_sha256"]), 64)
            self.assertIn("query_completed", events)

    def test_offline_compound_query_reports_handle_errors(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg_path = Path(td) / "config.yaml"
            cfg_path.write_text("{}", encoding="utf-8")

            proc = _run_cli(
                "--config", str(cfg_path), "--offline",
                "query", "--tag", "hiking", "--user", "@alice", "--user", "bob@invalid-domain",
            )

            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            payload = json.loads(proc.stdout)
            self.assertEqual([p["id"] for p in payload["photos"]], ["2:m2", "2:m3"])
            self.assertEqual(payload["errors"][0]["code"], "malformed_handle")

    def test_missing_token_exits_with_auth_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg_path = Path(td) / "config.yaml"
            cfg_path.write_text("{}", encoding="utf-8")

            proc = _run_cli("--config", str(cfg_path), "query", "--tag", "otters")

            self.assertEqual(proc.returncode, 3, msg=proc.stderr)
            self.assertEqual(json.loads(proc.stderr)["code"], "auth_required")

    def test_missing_config_exits_2(self) -> None:
        proc = _run_cli("--config", "/nonexistent/config.yaml", "--offline", "resolve", "alice")
        self.assertEqual(proc.returncode, 2, msg=proc.stderr)
        self.assertEqual(json.loads(proc.stderr)["code"], "config_error")


if __name__ == "__main__":
    unittest.main()
