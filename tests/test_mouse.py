"""Click-zone bookkeeping and zone-name resolution."""

from __future__ import annotations

import unittest

from jjview.input.mouse import ZoneMap, ZoneTarget, resolve_zone


class ZoneMapTests(unittest.TestCase):
    def test_hit_prefers_later_zones(self) -> None:
        zones = ZoneMap()
        zones.add("commit:0", row=3)
        zones.add("action:squash", row=3, col_start=10, col_end=16)

        self.assertEqual(zones.hit(12, 3), "action:squash")
        self.assertEqual(zones.hit(2, 3), "commit:0")
        self.assertEqual(zones.hit(16, 3), "commit:0")
        self.assertEqual(zones.hit(2, 4), "")

    def test_empty_spans_are_ignored(self) -> None:
        zones = ZoneMap()
        zones.add("action:new", row=0, col_start=5, col_end=5)

        self.assertEqual(len(zones), 0)

    def test_truncate_drops_rows_below_the_screen(self) -> None:
        zones = ZoneMap()
        for row in range(5):
            zones.add(f"commit:{row}", row=row)

        zones.truncate(3)

        self.assertEqual(zones.names(), ["commit:0", "commit:1", "commit:2"])


class ResolveZoneTests(unittest.TestCase):
    def test_action_tab_and_indexed_zones(self) -> None:
        self.assertEqual(resolve_zone("action:squash"), ZoneTarget("squash"))
        self.assertEqual(resolve_zone("tab:prs"), ZoneTarget("view_prs"))
        self.assertEqual(resolve_zone("commit:3"), ZoneTarget("select_commit", 3))
        self.assertEqual(resolve_zone("ticket:0"), ZoneTarget("select_ticket", 0))

    def test_unknown_zones_resolve_to_none(self) -> None:
        for name in ("action:", "tab:nowhere", "commit:x", "banner", ""):
            with self.subTest(name=name):
                self.assertIsNone(resolve_zone(name))


if __name__ == "__main__":
    unittest.main()
