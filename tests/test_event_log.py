from __future__ import annotations

import io
import json
import tempfile
import unittest
from pathlib import Path

from pixelfree.event_log import EventLogger


class TestEventLogger(unittest.TestCase):
    def test_writes_jsonl_with_bound_context(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "logs" / "events.jsonl"
            with EventLogger.open(path, session_id="s1") as log:
                log.info("started", limit=5)
                log.bind(request_id="r1", target="alice").warning("handle_unresolved")
                log.debug("ignored")

            lines = [json.loads(ln) for ln in path.read_text(encoding="utf-8").splitlines()]

        self.assertEqual([ln["event"] for ln in lines], ["started", "handle_unresolved"])
        self.assertEqual(lines[0]["data"], {"limit": 5})
        self.assertEqual(lines[0]["session_id"], "s1")
        self.assertNotIn("request_id", lines[0])
        self.assertEqual(lines[1]["level"], "WARN")
        self.assertEqual(lines[1]["request_id"], "r1")
        self.assertEqual(lines[1]["target"], "alice")

    def test_exception_captures_traceback(self) -> None:
        stream = io.StringIO()
        log = EventLogger.to_stream(stream, min_level="DEBUG")
        try:
            raise ValueError("bad thing")
        except ValueError as e:
            log.exception("query_failed", exc=e)
        log.debug("visible")

        records = [json.loads(ln) for ln in stream.getvalue().splitlines()]
        self.assertEqual(records[0]["data"]["error"]["type"], "ValueError")
        self.assertIn("bad thing", records[0]["data"]["error"]["traceback"])
        self.assertEqual(records[1]["event"], "visible")

        log.close()
        self.assertFalse(stream.closed)


if __name__ == "__main__":
    unittest.main()
