from __future__ import annotations
from typing import Sequence


class BootNextError(Exception):
    """Base class for every error reported to the user."""


class ProcessError(BootNextError):
    def __init__(self, command: Sequence[str], message: str) -> None:
        super().__init__(message)
        self.command = list(command)


class LaunchFailed(ProcessError):
    """The executable could not be found or started."""

    def __init__(self, command: Sequence[str], reason: object) -> None:
        super().__init__(command, f'failed to run command {list(command)}: {reason}')
        self.reason = reason


class CommandFailed(ProcessError):
    """The child process exited with a non-zero code."""

    def __init__(self, command: Sequence[str], returncode: int, output: str) -> None:
        super().__init__(
            command,
            f'command {list(command)} failed with exit code {returncode} and output:\n{output}',
        )
        self.returncode = returncode
        self.output = output


class QueryFailed(BootNextError):
    pass


class CommitFailed(BootNextError):
    pass


class RebootFailed(BootNextError):
    pass


class ElevationFailed(BootNextError):
    pass


class UnsupportedConfiguration(BootNextError):
    def __init__(self) -> None:
        super().__init__(
            'unsupported system configuration: the operating system has not been booted in UEFI mode'
        )


class MissingTool(BootNextError):
    def __init__(self, tool: str) -> None:
        super().__init__(f'a required application was not found in the system PATH: {tool}')
        self.tool = tool


class InvalidPattern(BootNextError):
    def __init__(self, pattern: str, reason: object) -> None:
        super().__init__(f'failed to compile regular expression "{pattern}": {reason}')
        self.pattern = pattern


class NoMatch(BootNextError):
    def __init__(self, pattern: str) -> None:
        super().__init__(f'could not find any UEFI boot entries matching the pattern "{pattern}"')
        self.pattern = pattern


class Relaunched(Exception):
    """An elevated copy of the program has already run; `code` is its exit code."""

    def __init__(self, code: int) -> None:
        super().__init__(f'elevated process exited with code {code}')
        self.code = code
