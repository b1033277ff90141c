from __future__ import annotations
import logging
import os
import re
from typing import Callable, List, Sequence

from . import common
from .common import BootManager, Elevator, capture_output
from bootnext.errors import CommitFailed, ElevationFailed, LaunchFailed, ProcessError, QueryFailed, RebootFailed
from bootnext.models import BootEntry

logger = logging.getLogger(__name__)

EFI_FIRMWARE_PATH = '/sys/firmware/efi'

_ENTRY_RE = re.compile(r"Boot([0-9A-Fa-f]+)\*?\s+(\S.*)")
_CURRENT_RE = re.compile(r"BootCurrent:\s*(\w+)")
_NEXT_RE = re.compile(r"BootNext:\s*(\w+)")


def parse_efibootmgr(text: str) -> List[BootEntry]:
    current = _CURRENT_RE.search(text)
    next_ = _NEXT_RE.search(text)
    cur = current.group(1) if current else None
    nxt = next_.group(1) if next_ else None

    entries: List[BootEntry] = []
    for line in text.splitlines():
        m = _ENTRY_RE.match(line)
        if not m:
            continue
        bid, desc = m.group(1), m.group(2).strip()
        entries.append(BootEntry(id=bid, description=desc, is_current=(bid == cur), is_next=(bid == nxt)))
    return entries


class LinuxBootManager(BootManager):
    def __init__(self, efi_path: str = EFI_FIRMWARE_PATH) -> None:
        self.efibootmgr = 'efibootmgr'
        self.efi_path = efi_path

    def is_uefi_enabled(self) -> bool:
        try:
            os.stat(self.efi_path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise QueryFailed(f'failed to query system UEFI status: {exc}') from exc
        return True

    def required_tools(self) -> List[str]:
        return [self.efibootmgr]

    def list_entries(self) -> List[BootEntry]:
        try:
            text = capture_output([self.efibootmgr])
        except ProcessError as exc:
            raise QueryFailed(f'failed to list UEFI boot entries: {exc}') from exc
        entries = parse_efibootmgr(text)
        logger.debug('Parsed %d boot entries from efibootmgr', len(entries))
        return entries

    def set_boot_next(self, entry: BootEntry) -> None:
        try:
            capture_output([self.efibootmgr, '--bootnext', entry.id])
        except ProcessError as exc:
            raise CommitFailed(f'failed to set BootNext variable value: {exc}') from exc

    def reboot_now(self) -> None:
        try:
            capture_output(['systemctl', 'reboot'])
        except ProcessError as exc:
            raise RebootFailed(f'failed to reboot: {exc}') from exc


class LinuxElevator(Elevator):
    """Re-runs the program through sudo (or pkexec) sharing our terminal."""

    CLI_HELPERS = ('sudo', 'pkexec')
    GUI_HELPERS = ('pkexec', 'sudo')

    def __init__(
        self,
        helpers: Sequence[str] = CLI_HELPERS,
        command_factory: Callable[[], List[str]] = common.relaunch_command,
    ) -> None:
        self.helpers = tuple(helpers)
        self.command_factory = command_factory

    def is_elevated(self) -> bool:
        return os.geteuid() == 0

    def _find_helper(self) -> str:
        for name in self.helpers:
            if common.which(name):
                return name
        raise ElevationFailed(
            'no privilege escalation helper found in the system PATH (tried: {})'.format(', '.join(self.helpers))
        )

    def elevated_command(self, helper: str) -> List[str]:
        command = self.command_factory()
        if helper != 'pkexec':
            return [helper, *command]
        # pkexec clears the environment; keep what a GUI needs to reach the display
        env_args = []
        for key in ('DISPLAY', 'XAUTHORITY', 'WAYLAND_DISPLAY', 'XDG_RUNTIME_DIR'):
            val = os.environ.get(key)
            if val:
                env_args += [f'{key}={val}']
        if env_args:
            return [helper, 'env', *env_args, *command]
        return [helper, *command]

    def run_elevated(self) -> int:
        helper = self._find_helper()
        command = self.elevated_command(helper)
        logger.info('Re-launching with elevated privileges via %s', helper)
        try:
            return common.run_with_inherited_handles(command)
        except LaunchFailed as exc:
            raise ElevationFailed(str(exc)) from exc

    def pause_for_input(self) -> None:
        common.run_with_inherited_handles(
            ['bash', '-c', 'read -n 1 -rsp "Press any key to continue..."; echo ""']
        )
