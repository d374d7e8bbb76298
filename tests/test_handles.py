from __future__ import annotations

import unittest

from pixelfree.errors import ErrorKind, ResolutionError, ResolutionFailure
from pixelfree.handles import is_remote_handle, normalize_handle


class TestNormalizeHandle(unittest.TestCase):
    def test_leading_at_is_stripped(self) -> None:
        self.assertEqual(normalize_handle("@alice"), "alice")
        self.assertEqual(normalize_handle("alice"), "alice")
        self.assertEqual(normalize_handle("  @bob@pixelfed.social "), "bob@pixelfed.social")

    def test_profile_urls(self) -> None:
        self.assertEqual(normalize_handle("https://example.social/@alice"), "alice@example.social")
        self.assertEqual(normalize_handle("https://mastodon.sdf.org/@icm/"), "icm@mastodon.sdf.org")
        self.assertEqual(normalize_handle("https://pixelfed.social/users/dan"), "dan@pixelfed.social")
        self.assertEqual(normalize_handle("https://pixelfed.social/dan"), "dan@pixelfed.social")
        self.assertEqual(
            normalize_handle("https://mastodon.social/@alice@pixelfed.social"),
            "alice@pixelfed.social",
        )

    def test_incomplete_domain_is_malformed(self) -> None:
        for raw in ("@alice@bad", "bob@invalid-domain", "carol@", "@dave@host."):
            with self.subTest(raw=raw):
                with self.assertRaises(ResolutionError) as ctx:
                    normalize_handle(raw)
                self.assertEqual(ctx.exception.reason, ResolutionFailure.MALFORMED_HANDLE)
                self.assertEqual(ctx.exception.kind, ErrorKind.VALIDATION)
                self.assertEqual(ctx.exception.handle, raw)

    def test_other_malformed_inputs(self) -> None:
        for raw in ("", "   ", "@", "@@x.org", "a@b.org@c.org", "https://example.social/"):
            with self.subTest(raw=raw):
                with self.assertRaises(ResolutionError):
                    normalize_handle(raw)

    def test_is_remote_handle(self) -> None:
        self.assertTrue(is_remote_handle("alice@example.social"))
        self.assertFalse(is_remote_handle("alice"))


if __name__ == "__main__":
    unittest.main()
