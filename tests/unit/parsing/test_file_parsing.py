from __future__ import annotations

import unittest

from lazyp4.parsing import parse_fstat, parse_fstat_all, parse_opened, parse_opened_line
from lazyp4.types import FileState

SHARED_FSTAT = """... depotFile //depot/main/shared.c
... clientFile /Users/alice/main/shared.c
... isMapped
... headAction edit
... headType text
... headRev 7
... haveRev 7
... ... otherOpen0 bob@bob-ws
... ... otherAction0 edit
... otherOpen 1

... depotFile //depot/main/locked.bin
... clientFile /Users/alice/main/locked.bin
... headAction add
... headType binary+l
... headRev 2
... haveRev 1
... otherLock
... ... otherLock0 carol@carol-ws
"""


class FstatParsingTests(unittest.TestCase):
    def test_checked_out_by_me(self) -> None:
        status = parse_fstat("... depotFile //depot/a.txt\n... clientFile /w/a.txt\n... action edit\n... haveRev 3\n... headRev 3\n")
        self.assertTrue(status.checked_out_by_me)
        self.assertIs(status.status, FileState.CHECKED_OUT_BY_ME)
        self.assertFalse(status.needs_sync)

    def test_multiple_records_with_other_openers_and_locks(self) -> None:
        shared, locked = parse_fstat_all(SHARED_FSTAT)

        self.assertIs(shared.status, FileState.CHECKED_OUT_BY_OTHER)
        self.assertEqual(shared.other_openers, ("bob@bob-ws",))
        self.assertEqual(shared.file_type, "text")
        self.assertIs(locked.status, FileState.LOCKED_BY_OTHER)
        self.assertTrue(locked.needs_sync)

    def test_repeated_depot_file_without_blank_line_starts_new_record(self) -> None:
        statuses = parse_fstat_all("... depotFile //depot/a\n... headRev 1\n... depotFile //depot/b\n... headRev 2\n")
        self.assertEqual([status.depot_path for status in statuses], ["//depot/a", "//depot/b"])

    def test_state_priority(self) -> None:
        added = parse_fstat("... clientFile /w/new.c\n... action add\n")
        deleted = parse_fstat("... depotFile //depot/old.c\n... action delete\n... headRev 4\n")
        ours = parse_fstat("... depotFile //depot/mine.c\n... headRev 4\n... ourLock\n")
        normal = parse_fstat("... depotFile //depot/n.c\n... headRev 4\n... haveRev 4\n")

        self.assertIs(added.status, FileState.ADDED)
        self.assertIs(deleted.status, FileState.MARKED_FOR_DELETE)
        self.assertIs(ours.status, FileState.LOCKED_BY_ME)
        self.assertIs(normal.status, FileState.NORMAL)
        self.assertTrue(normal.in_depot)
        self.assertFalse(added.in_depot)

    def test_unparseable_text_is_untracked(self) -> None:
        self.assertIs(parse_fstat("x.c - no such file(s).\n").status, FileState.UNTRACKED)
        self.assertIs(parse_fstat("").status, FileState.UNTRACKED)

    def test_bad_revision_numbers_become_none(self) -> None:
        status = parse_fstat("... depotFile //depot/a\n... haveRev none\n... headRev 3\n")
        self.assertIsNone(status.have_rev)
        self.assertFalse(status.needs_sync)


class OpenedParsingTests(unittest.TestCase):
    def test_default_change_line(self) -> None:
        entry = parse_opened_line("//depot/a.txt#3 - edit default change (text)")
        self.assertEqual(entry.depot_file, "//depot/a.txt")
        self.assertEqual(entry.revision, 3)
        self.assertEqual(entry.action, "edit")
        self.assertEqual(entry.change, "default")
        self.assertEqual(entry.file_type, "text")
        self.assertFalse(entry.locked)

    def test_numbered_change_new_file_and_lock(self) -> None:
        entry = parse_opened_line("//depot/dir with space/new.bin#none - add change 1042 (binary+l) *locked*")
        self.assertEqual(entry.depot_file, "//depot/dir with space/new.bin")
        self.assertEqual(entry.revision, 0)
        self.assertEqual(entry.change, "1042")
        self.assertTrue(entry.locked)

    def test_not_opened_output_is_empty(self) -> None:
        self.assertEqual(parse_opened("file(s) not opened on this client.\n"), [])

    def test_move_actions(self) -> None:
        entries = parse_opened(
            "//depot/a.c#1 - move/delete default change (text)\n//depot/b.c#1 - move/add default change (text)\n"
        )
        self.assertEqual([entry.action for entry in entries], ["move/delete", "move/add"])


if __name__ == "__main__":
    unittest.main()
