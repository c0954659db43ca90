from __future__ import annotations

import subprocess
import unittest

from lazyp4.errors import ErrorKind, ProcessError
from lazyp4.executor import CommandExecutor, CommandOutput, build_command, format_command_line, quote_token


class _RecordingRun:
    def __init__(self, *, stdout: str = "", stderr: str = "", returncode: int = 0, raises: BaseException | None = None):
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.raises = raises
        self.commands: list[list[str]] = []
        self.kwargs: list[dict[str, object]] = []

    def __call__(self, command, **kwargs):
        self.commands.append(list(command))
        self.kwargs.append(kwargs)
        if self.raises is not None:
            raise self.raises
        return subprocess.CompletedProcess(command, self.returncode, self.stdout, self.stderr)


class BuildCommandTests(unittest.TestCase):
    def test_identity_flags_precede_verb_only_when_set(self) -> None:
        self.assertEqual(
            build_command("p4", ["edit", "a.c"], user="alice", workspace="alice-main"),
            ["p4", "-u", "alice", "-c", "alice-main", "edit", "a.c"],
        )
        self.assertEqual(build_command("p4", ["info"], user="", workspace=None), ["p4", "info"])

    def test_display_line_quotes_tokens_with_whitespace(self) -> None:
        self.assertEqual(quote_token("plain"), "plain")
        self.assertEqual(quote_token("has space"), '"has space"')
        self.assertEqual(quote_token(""), '""')
        self.assertEqual(
            format_command_line(["p4", "submit", "-d", "Fix the frobnicator"]),
            'p4 submit -d "Fix the frobnicator"',
        )


class CommandExecutorTests(unittest.TestCase):
    def test_execute_passes_flags_timeout_and_closed_stdin(self) -> None:
        run = _RecordingRun(stdout="//depot/a.c#3 - opened for edit\n")
        executor = CommandExecutor("p4", environment={"P4PORT": "ssl:perforce:1666"}, run=run)

        output = executor.execute(["edit", "a.c"], user="alice", workspace="alice-main", timeout_seconds=7)

        self.assertEqual(run.commands[0], ["p4", "-u", "alice", "-c", "alice-main", "edit", "a.c"])
        self.assertEqual(run.kwargs[0]["timeout"], 7)
        self.assertIs(run.kwargs[0]["stdin"], subprocess.DEVNULL)
        self.assertFalse(run.kwargs[0]["check"])
        self.assertEqual(run.kwargs[0]["env"]["P4PORT"], "ssl:perforce:1666")
        self.assertEqual(output.command_line, "p4 -u alice -c alice-main edit a.c")
        self.assertEqual(output.text, "//depot/a.c#3 - opened for edit\n")

    def test_default_timeout_applies_when_unspecified(self) -> None:
        run = _RecordingRun(stdout="ok\n")
        CommandExecutor("p4", default_timeout_seconds=12.5, run=run).execute(["info"])
        self.assertEqual(run.kwargs[0]["timeout"], 12.5)

    def test_timeout_becomes_timeout_error(self) -> None:
        run = _RecordingRun(raises=subprocess.TimeoutExpired(["p4", "info"], 5))
        executor = CommandExecutor("p4", run=run)

        with self.assertLogs("lazyp4.executor", level="WARNING"):
            with self.assertRaises(ProcessError) as caught:
                executor.execute(["info"], timeout_seconds=5)

        self.assertIs(caught.exception.kind, ErrorKind.TIMEOUT)
        self.assertEqual(caught.exception.command_line, "p4 info")

    def test_nonzero_exit_with_output_is_returned(self) -> None:
        run = _RecordingRun(stderr="a.c - file(s) not opened on this client.\n", returncode=1)

        output = CommandExecutor("p4", run=run).execute(["revert", "a.c"])

        self.assertEqual(output.returncode, 1)
        self.assertIn("not opened on this client", output.text)

    def test_nonzero_exit_without_output_is_tool_unavailable(self) -> None:
        run = _RecordingRun(stdout="  \n", returncode=127)

        with self.assertRaises(ProcessError) as caught:
            CommandExecutor("p4", run=run).execute(["info"])

        self.assertIs(caught.exception.kind, ErrorKind.TOOL_UNAVAILABLE)

    def test_zero_exit_without_output_is_a_normal_empty_result(self) -> None:
        output = CommandExecutor("p4", run=_RecordingRun()).execute(["opened"])
        self.assertEqual(output.text, "")


class CommandOutputTests(unittest.TestCase):
    def test_text_joins_streams_stdout_first(self) -> None:
        output = CommandOutput("p4 sync", "//depot/a.c#2 - updating /w/a.c", "warning: clobber\n", 0)
        self.assertEqual(output.text, "//depot/a.c#2 - updating /w/a.c\nwarning: clobber\n")
        self.assertEqual(CommandOutput("p4", "", "only err\n", 1).text, "only err\n")


if __name__ == "__main__":
    unittest.main()
