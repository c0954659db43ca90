from __future__ import annotations

import unittest

from lazyp4.diff_render import render_diff, sanitize_terminal_text

DIFF = "--- a.c\n+++ a.c\n@@ -1 +1 @@\n-old\n+new\n"


class DiffRenderTests(unittest.TestCase):
    def test_plain_rendering_returns_text(self) -> None:
        self.assertEqual(render_diff(DIFF, colorize=False), DIFF)

    def test_colorized_rendering_emits_ansi(self) -> None:
        rendered = render_diff(DIFF)
        self.assertIn("\x1b[", rendered)
        self.assertIn("+new", rendered.replace("\x1b[", "\n"))
        self.assertTrue(rendered.endswith("\n"))

    def test_unknown_style_falls_back(self) -> None:
        self.assertEqual(render_diff(DIFF, style="no-such-style"), render_diff(DIFF))

    def test_control_bytes_are_escaped(self) -> None:
        self.assertEqual(sanitize_terminal_text("+bell\x07\tok\n"), "+bell\\x07\tok\n")
        self.assertNotIn("\x1b]", render_diff("+\x1b]0;title\x07\n", colorize=False))

    def test_blank_text_is_untouched(self) -> None:
        self.assertEqual(render_diff(""), "")


if __name__ == "__main__":
    unittest.main()
