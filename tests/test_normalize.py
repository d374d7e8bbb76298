# tests/test_normalize.py
from __future__ import annotations

import unittest
from datetime import datetime, timezone

from pixelfree.normalize import (
    parse_timestamp,
    photo_records_from_status,
    photo_records_from_statuses,
)


def _status(**overrides):
    status = {
        "id": "900",
        "created_at": "2025-11-07T20:56:47.000Z",
        "content": "<p>Otters!</p>",
        "url": "https://pixelfed.example/p/alice/900",
        "account": {
            "id": 7,
            "acct": "alice@pixelfed.example",
            "username": "alice",
            "display_name": "Alice",
            "avatar": "https://pixelfed.example/a.png",
        },
        "tags": [{"name": "Otters"}, {"name": "#Nature"}, "rivers"],
        "place": {"name": "Monterey"},
        "media_attachments": [
            {"id": "a", "type": "image", "url": "https://cdn/a.jpg", "preview_url": "https://cdn/a_s.jpg"},
            {"id": "b", "type": "video", "url": "https://cdn/b.mp4"},
            {"id": "c", "type": "image", "url": "https://cdn/c.jpg"},
            {"id": "d", "type": "image", "url": None},
        ],
    }
    status.update(overrides)
    return status


class TestNormalize(unittest.TestCase):
    def test_one_record_per_image_attachment(self) -> None:
        records = photo_records_from_status(_status())

        self.assertEqual([r.media_url for r in records], ["https://cdn/a.jpg", "https://cdn/c.jpg"])
        self.assertEqual([r.id for r in records], ["900:a", "900:c"])
        self.assertEqual(records[0].preview_url, "https://cdn/a_s.jpg")
        self.assertEqual(records[1].preview_url, "https://cdn/c.jpg")

        first, second = records
        self.assertEqual(first.author, second.author)
        self.assertEqual(first.caption_html, second.caption_html)
        self.assertEqual(first.tags, second.tags)
        self.assertEqual(first.tags, frozenset({"otters", "nature", "rivers"}))

    def test_status_fields_are_carried(self) -> None:
        record = photo_records_from_status(_status())[0]

        assert record.author is not None
        self.assertEqual(record.author.account_id, "7")
        self.assertEqual(record.author.handle, "alice@pixelfed.example")
        self.assertEqual(record.author.display_name, "Alice")
        self.assertEqual(record.post_url, "https://pixelfed.example/p/alice/900")
        self.assertEqual(record.location, {"name": "Monterey"})
        self.assertEqual(
            record.created_at,
            datetime(2025, 11, 7, 20, 56, 47, tzinfo=timezone.utc),
        )

    def test_statuses_without_images_yield_nothing(self) -> None:
        self.assertEqual(photo_records_from_status(_status(media_attachments=[])), [])
        self.assertEqual(photo_records_from_status(_status(media_attachments=None)), [])
        self.assertEqual(
            photo_records_from_status(
                _status(media_attachments=[{"id": "v", "type": "video", "url": "https://cdn/v.mp4"}])
            ),
            [],
        )
        status = _status()
        del status["media_attachments"]
        self.assertEqual(photo_records_from_status(status), [])

    def test_attachment_without_id_uses_index(self) -> None:
        records = photo_records_from_status(
            _status(media_attachments=[{"type": "image", "url": "u1"}, {"type": "image", "url": "u2"}])
        )
        self.assertEqual([r.id for r in records], ["900:0", "900:1"])

    def test_missing_caption_and_bad_timestamp(self) -> None:
        record = photo_records_from_status(_status(content=None, created_at="yesterday"))[0]
        self.assertEqual(record.caption_html, "")
        self.assertIsNone(record.created_at)

    def test_statuses_payload_must_be_a_list(self) -> None:
        self.assertEqual(photo_records_from_statuses({"error": "nope"}), [])
        self.assertEqual(len(photo_records_from_statuses([_status(), "junk", None])), 2)

    def test_to_json_shape(self) -> None:
        payload = photo_records_from_status(_status())[0].to_json()
        self.assertEqual(payload["url"], "https://cdn/a.jpg")
        self.assertEqual(payload["caption"], "<p>Otters!</p>")
        self.assertEqual(payload["tags"], ["nature", "otters", "rivers"])
        self.assertEqual(payload["author"]["acct"], "alice@pixelfed.example")
        self.assertEqual(payload["created_at"], "2025-11-07T20:56:47+00:00")

    def test_parse_timestamp_treats_naive_as_utc(self) -> None:
        self.assertEqual(
            parse_timestamp("2025-01-01T00:00:00"),
            datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        self.assertIsNone(parse_timestamp(""))
        self.assertIsNone(parse_timestamp(12))


if __name__ == "__main__":
    unittest.main()
