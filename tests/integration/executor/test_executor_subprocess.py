"""End-to-end executor tests against a real child process.

The current Python interpreter stands in for ``p4`` so spawning, timeouts,
exit handling, and environment propagation run for real.
"""

from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path

from lazyp4.errors import ErrorKind, ProcessError
from lazyp4.executor import CommandExecutor


class ExecutorSubprocessTests(unittest.TestCase):
    def setUp(self) -> None:
        self.executor = CommandExecutor(sys.executable, default_timeout_seconds=10)

    def test_captures_both_streams(self) -> None:
        output = self.executor.execute(
            ["-c", "import sys; print('out'); sys.stderr.write('err\\n')"],
        )
        self.assertEqual(output.stdout, "out\n")
        self.assertEqual(output.stderr, "err\n")
        self.assertEqual(output.returncode, 0)
        self.assertGreaterEqual(output.elapsed_seconds, 0.0)

    def test_stdin_is_closed(self) -> None:
        output = self.executor.execute(["-c", "import sys; print(repr(sys.stdin.read()))"])
        self.assertEqual(output.stdout.strip(), "''")

    def test_hung_child_times_out(self) -> None:
        with self.assertRaises(ProcessError) as caught:
            self.executor.execute(["-c", "import time; time.sleep(30)"], timeout_seconds=0.5)
        self.assertIs(caught.exception.kind, ErrorKind.TIMEOUT)

    def test_missing_tool_is_unavailable(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            executor = CommandExecutor(str(Path(tmp) / "no-such-p4"))
            with self.assertRaises(ProcessError) as caught:
                executor.execute(["info"])
        self.assertIs(caught.exception.kind, ErrorKind.TOOL_UNAVAILABLE)

    def test_silent_nonzero_exit_is_unavailable(self) -> None:
        with self.assertRaises(ProcessError) as caught:
            self.executor.execute(["-c", "import sys; sys.exit(3)"])
        self.assertIs(caught.exception.kind, ErrorKind.TOOL_UNAVAILABLE)

    def test_nonzero_exit_with_message_is_returned(self) -> None:
        output = self.executor.execute(
            ["-c", "import sys; sys.stderr.write('a.c - file(s) not opened on this client.\\n'); sys.exit(1)"],
        )
        self.assertEqual(output.returncode, 1)
        self.assertEqual(output.text, "a.c - file(s) not opened on this client.\n")

    def test_extra_environment_reaches_child(self) -> None:
        executor = CommandExecutor(sys.executable, environment={"P4CLIENT": "ws-from-env"})
        output = executor.execute(["-c", "import os; print(os.environ['P4CLIENT'])"])
        self.assertEqual(output.stdout.strip(), "ws-from-env")


if __name__ == "__main__":
    unittest.main()
