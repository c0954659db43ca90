from __future__ import annotations

import unittest

from lazyp4.parsing import parse_client_line, parse_clients, parse_info, parse_key_values


class KeyValueParsingTests(unittest.TestCase):
    def test_keys_are_normalized_and_values_keep_later_colons(self) -> None:
        fields = parse_key_values("User  Name: alice\nServer address: ssl:perforce:1666\n\tindented: skipped\nnoise\n")
        self.assertEqual(fields, {"user name": "alice", "server address": "ssl:perforce:1666"})

    def test_first_occurrence_wins(self) -> None:
        self.assertEqual(parse_key_values("Client name: a\nClient name: b\n")["client name"], "a")


class InfoParsingTests(unittest.TestCase):
    def test_connected_info(self) -> None:
        record = parse_info(
            "User name: alice\n"
            "Client name: alice-main\n"
            "Client root: /Users/alice/main\n"
            "Server address: ssl:perforce:1666\n"
            "Server version: P4D/LINUX26X86_64/2023.1/2468153 (2023/06/01)\n"
        )
        self.assertTrue(record.connected)
        self.assertEqual(record.user, "alice")
        self.assertEqual(record.client, "alice-main")
        self.assertEqual(record.client_root, "/Users/alice/main")
        self.assertTrue(record.server_version.startswith("P4D/"))

    def test_unknown_client_is_blank(self) -> None:
        record = parse_info("User name: alice\nClient name: *unknown*\nServer address: perforce:1666\n")
        self.assertEqual(record.client, "")
        self.assertTrue(record.connected)

    def test_connect_failure_is_not_connected(self) -> None:
        record = parse_info("Perforce client error:\n\tConnect to server failed; check $P4PORT.\n")
        self.assertFalse(record.connected)

    def test_missing_server_address_is_not_connected(self) -> None:
        self.assertFalse(parse_info("User name: alice\n").connected)


class ClientsParsingTests(unittest.TestCase):
    def test_basic_client_line(self) -> None:
        descriptor = parse_client_line("Client myws 2024/01/01 root /Users/x/proj 'desc'")
        self.assertEqual(descriptor.name, "myws")
        self.assertEqual(descriptor.root, "/Users/x/proj")
        self.assertEqual(descriptor.description, "desc")

    def test_root_with_spaces_and_windows_separators(self) -> None:
        spaced = parse_client_line("Client sp 2024/01/01 root /Users/x/my proj 'Created by x. '")
        windows = parse_client_line("Client win-ws 2024/01/01 root C:\\work\\proj 'Windows box '")
        self.assertEqual(spaced.root, "/Users/x/my proj")
        self.assertEqual(spaced.description, "Created by x.")
        self.assertEqual(windows.root, "C:\\work\\proj")

    def test_line_without_description(self) -> None:
        self.assertEqual(parse_client_line("Client bare 2024/01/01 root /srv/bare").root, "/srv/bare")

    def test_unrecognized_lines_are_skipped(self) -> None:
        workspaces = parse_clients(
            "Client a 2024/01/01 root /a 'first '\n"
            "garbage line\n"
            "Client b 2024/01/02 root /b 'second '\n"
        )
        self.assertEqual([ws.name for ws in workspaces], ["a", "b"])
        self.assertIsNone(parse_client_line("Client broken"))


if __name__ == "__main__":
    unittest.main()
