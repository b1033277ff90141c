from __future__ import annotations
import logging
import re
from typing import Callable, List, Optional

from . import common
from .common import BootManager, Elevator, capture_output
from bootnext.errors import CommitFailed, ElevationFailed, ProcessError, QueryFailed, RebootFailed
from bootnext.models import BootEntry

logger = logging.getLogger(__name__)


# Support both English and Chinese bcdedit output
_SEPARATOR_RE = re.compile(r"^-+$")
_IDENTIFIER_RE = re.compile(r"^(?:identifier|标识符) +(.+)$", re.IGNORECASE)
_DESCRIPTION_RE = re.compile(r"^(?:description|描述|说明|說明) +(.+)$", re.IGNORECASE)
_BOOTSEQUENCE_RE = re.compile(r"^(?:bootsequence|启动序列) +(\{[^}]+\})", re.IGNORECASE)

PAUSE_FLAG = '--pause'

# ShellExecuteEx flags (see SHELLEXECUTEINFOW docs)
SEE_MASK_NOCLOSEPROCESS = 0x00000040
SEE_MASK_NO_CONSOLE = 0x00008000
SW_SHOWNORMAL = 1

# ShellExecuteEx hInstApp error codes
SE_ERR_FNF = 2
SE_ERR_PNF = 3
SE_ERR_ACCESSDENIED = 5
SE_ERR_OOM = 8
SE_ERR_SHARE = 26
SE_ERR_ASSOCINCOMPLETE = 27
SE_ERR_DDETIMEOUT = 28
SE_ERR_DDEFAIL = 29
SE_ERR_DDEBUSY = 30
SE_ERR_NOASSOC = 31
SE_ERR_DLLNOTFOUND = 32

SHELL_EXECUTE_ERRORS = {
    SE_ERR_FNF: 'File not found.',
    SE_ERR_PNF: 'Path not found.',
    SE_ERR_ACCESSDENIED: 'Access denied.',
    SE_ERR_OOM: 'Out of memory.',
    SE_ERR_SHARE: 'Cannot share an open file.',
    SE_ERR_ASSOCINCOMPLETE: 'File association information not complete.',
    SE_ERR_DDETIMEOUT: 'DDE operation timed out.',
    SE_ERR_DDEFAIL: 'DDE operation failed.',
    SE_ERR_DDEBUSY: 'DDE operation is busy.',
    SE_ERR_NOASSOC: 'File association not available.',
    SE_ERR_DLLNOTFOUND: 'Dynamic-link library not found.',
}


def parse_bcdedit_firmware(text: str) -> List[BootEntry]:
    """Parse `bcdedit /enum firmware` output into boot entries.

    Every line of dashes opens a new entry; the identifier and description
    lines of a block may appear in any order. Blocks lacking either one
    (such as the firmware boot manager itself) are dropped.
    """
    entries: List[BootEntry] = []
    boot_sequence: Optional[str] = None

    for raw in text.replace('\r\n', '\n').split('\n'):
        line = raw.strip()
        if _SEPARATOR_RE.match(line):
            entries.append(BootEntry(id='', description=''))
            continue
        if not entries:
            continue
        m = _IDENTIFIER_RE.match(line)
        if m:
            entries[-1].id = m.group(1).strip()
            continue
        m = _DESCRIPTION_RE.match(line)
        if m:
            entries[-1].description = m.group(1).strip()
            continue
        m = _BOOTSEQUENCE_RE.match(line)
        if m and boot_sequence is None:
            boot_sequence = m.group(1)

    filtered = [e for e in entries if e.id and e.description]
    if boot_sequence:
        for e in filtered:
            e.is_next = e.id.lower() == boot_sequence.lower()
    return filtered


def quote_argument(arg: str) -> str:
    """Escape one argument for the command line handed to ShellExecuteEx."""
    out = []
    for index, char in enumerate(arg):
        # A trailing backslash would escape our closing quote
        if char == '\\' and index == len(arg) - 1:
            continue
        if char in ('"', '\\'):
            out.append('\\')
        out.append(char)
    return '"' + ''.join(out) + '"'


class WindowsBootManager(BootManager):
    elevation_required_to_read = True

    def __init__(self) -> None:
        self.bcdedit = 'bcdedit'

    def _run_bcd(self, args: List[str]) -> str:
        return capture_output([self.bcdedit, *args], hide_window=True)

    def is_uefi_enabled(self) -> bool:
        try:
            output = capture_output(
                [
                    'powershell.exe',
                    '-ExecutionPolicy', 'Bypass',
                    '-Command', 'Write-Host $env:firmware_type',
                ],
                hide_window=True,
            )
        except ProcessError as exc:
            raise QueryFailed(f'failed to query system UEFI status: {exc}') from exc
        return output.strip().upper() == 'UEFI'

    def required_tools(self) -> List[str]:
        return [self.bcdedit]

    def list_entries(self) -> List[BootEntry]:
        try:
            text = self._run_bcd(['/enum', 'firmware'])
        except ProcessError as exc:
            raise QueryFailed(f'failed to list UEFI boot entries: {exc}') from exc
        entries = parse_bcdedit_firmware(text)
        logger.debug('Parsed %d boot entries from bcdedit', len(entries))
        return entries

    def set_boot_next(self, entry: BootEntry) -> None:
        try:
            self._run_bcd(['/set', '{fwbootmgr}', 'bootsequence', entry.id])
        except ProcessError as exc:
            raise CommitFailed(f'failed to set BootNext variable value: {exc}') from exc

    def reboot_now(self) -> None:
        try:
            capture_output(['shutdown', '/r', '/t', '0'], hide_window=True)
        except ProcessError as exc:
            raise RebootFailed(f'failed to reboot: {exc}') from exc


class WindowsElevator(Elevator):
    """Re-runs the program through the "runas" shell verb.

    The elevated copy always gets a console of its own, which closes as soon
    as it exits, so the child is asked to pause before exiting.
    """

    def __init__(
        self,
        api=None,
        command_factory: Callable[[], List[str]] = common.relaunch_command,
        pause_child: bool = True,
    ) -> None:
        if api is None:
            from .win32 import Win32Api
            api = Win32Api()
        self.api = api
        self.command_factory = command_factory
        self.pause_child = pause_child

    def is_elevated(self) -> bool:
        try:
            return self.api.is_token_elevated()
        except OSError as exc:
            raise ElevationFailed(f'failed to query the process token: {exc}') from exc

    def elevated_command(self) -> List[str]:
        command = self.command_factory()
        if self.pause_child and PAUSE_FLAG not in command[1:]:
            command.append(PAUSE_FLAG)
        return command

    def _failure_message(self, inst_app: int, last_error: int) -> str:
        if inst_app in SHELL_EXECUTE_ERRORS:
            return SHELL_EXECUTE_ERRORS[inst_app]
        message = (self.api.format_error(last_error) or '').strip()
        return message or f'ShellExecuteEx failed with error code {last_error}'

    def run_elevated(self) -> int:
        command = self.elevated_command()
        parameters = ' '.join(quote_argument(a) for a in command[1:])
        logger.info('Re-launching with elevated privileges: %s %s', command[0], parameters)

        result = self.api.shell_execute(
            'runas', command[0], parameters, SEE_MASK_NOCLOSEPROCESS | SEE_MASK_NO_CONSOLE, SW_SHOWNORMAL
        )
        if not result.ok:
            raise ElevationFailed(self._failure_message(result.inst_app, result.last_error))

        try:
            return self.api.wait_for_exit_code(result.process)
        except OSError as exc:
            raise ElevationFailed(f'failed to wait for the elevated process: {exc}') from exc

    def pause_for_input(self) -> None:
        common.run_with_inherited_handles(['cmd.exe', '/C', 'pause'])
