from __future__ import annotations
import abc
import logging
import platform
import shutil
import subprocess
import sys
from typing import List, Sequence

from bootnext.errors import CommandFailed, LaunchFailed
from bootnext.models import BootEntry

logger = logging.getLogger(__name__)


def which(cmd: str) -> str | None:
    return shutil.which(cmd)


def current_platform() -> str:
    return platform.system()


def capture_output(command: Sequence[str], hide_window: bool = False) -> str:
    """Run a command and return its combined stdout and stderr.

    Raises LaunchFailed if the executable cannot be started and
    CommandFailed if it exits with a non-zero code.
    """
    kwargs = {
        'stdout': subprocess.PIPE,
        'stderr': subprocess.STDOUT,
        'text': True,
        'errors': 'replace',
    }

    # Keep bcdedit/powershell from flashing a console window
    if hide_window and current_platform() == 'Windows':
        kwargs['creationflags'] = subprocess.CREATE_NO_WINDOW

    logger.debug('Running %s', list(command))
    try:
        cp = subprocess.run(list(command), **kwargs)
    except OSError as exc:
        raise LaunchFailed(command, exc) from exc

    output = cp.stdout or ''
    if cp.returncode != 0:
        raise CommandFailed(command, cp.returncode, output)
    return output


def run_with_inherited_handles(command: Sequence[str]) -> int:
    """Run a command attached to our own stdin/stdout/stderr and return its exit code."""
    executable = which(command[0])
    if executable is None:
        raise LaunchFailed(command, f'executable file not found in PATH: {command[0]}')

    logger.debug('Running %s with inherited handles', [executable, *command[1:]])
    try:
        return subprocess.call([executable, *command[1:]])
    except OSError as exc:
        raise LaunchFailed(command, exc) from exc


def relaunch_command() -> List[str]:
    """Command line that starts this program again with the same arguments."""
    # Frozen builds (PyInstaller) are their own executable; from source we
    # always go through `-m bootnext.main` to reach the entry module again.
    if getattr(sys, 'frozen', False):
        return [sys.executable, *sys.argv[1:]]
    return [sys.executable, '-m', 'bootnext.main', *sys.argv[1:]]


class BootManager(abc.ABC):
    """Lists UEFI boot entries and sets the one-time BootNext pointer."""

    # bcdedit refuses to read the store without admin rights
    elevation_required_to_read = False

    @abc.abstractmethod
    def is_uefi_enabled(self) -> bool:
        ...

    @abc.abstractmethod
    def required_tools(self) -> List[str]:
        ...

    @abc.abstractmethod
    def list_entries(self) -> List[BootEntry]:
        ...

    @abc.abstractmethod
    def set_boot_next(self, entry: BootEntry) -> None:
        ...

    @abc.abstractmethod
    def reboot_now(self) -> None:
        ...


class Elevator(abc.ABC):
    """Detects admin/root rights and re-runs the program with them."""

    @abc.abstractmethod
    def is_elevated(self) -> bool:
        ...

    @abc.abstractmethod
    def run_elevated(self) -> int:
        """Run an elevated copy of this process and return its exit code."""

    @abc.abstractmethod
    def pause_for_input(self) -> None:
        ...
