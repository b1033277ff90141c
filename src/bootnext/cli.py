from __future__ import annotations
import argparse
import json
import logging
from typing import List, Optional, Tuple

from . import __version__
from .errors import BootNextError, ElevationFailed, MissingTool, Relaunched, UnsupportedConfiguration
from .models import BootEntry
from .platforms import common
from .platforms.common import BootManager, Elevator, current_platform
from .platforms.linux import LinuxBootManager, LinuxElevator
from .platforms.windows import WindowsBootManager, WindowsElevator
from .selection import compile_pattern, select_entry

logger = logging.getLogger(__name__)


def get_platform(gui: bool = False, system: Optional[str] = None) -> Tuple[BootManager, Elevator]:
    plat = system or current_platform()
    if plat == 'Windows':
        # The GUI child has no console worth keeping open
        return WindowsBootManager(), WindowsElevator(pause_child=not gui)
    helpers = LinuxElevator.GUI_HELPERS if gui else LinuxElevator.CLI_HELPERS
    return LinuxBootManager(), LinuxElevator(helpers=helpers)


def format_entries(entries: List[BootEntry], output: str) -> str:
    if output == 'json':
        return json.dumps([e.to_dict() for e in entries], ensure_ascii=False, indent=2)
    lines = ['Detected the following UEFI boot entries:']
    for e in entries:
        flags = ('  (current)' if e.is_current else '') + ('  (next)' if e.is_next else '')
        lines.append(f'- ID: "{e.id}", Description: "{e.description}"{flags}')
    return '\n'.join(lines)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='bootnext',
        description='Sets the UEFI "BootNext" variable and triggers a reboot into the target operating system. '
                    'This facilitates quickly switching to another OS without modifying the default boot order.',
        epilog='examples:\n'
               '  bootnext windows   Selects the Windows Boot Manager and boots into it\n'
               '  bootnext ubuntu    Selects the GRUB bootloader installed by Ubuntu Linux and boots into it\n'
               '  bootnext USB       Selects the first available bootable USB device and boots into it',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument('pattern', nargs='?', default='',
                   help='A regular expression that will be used to select the target boot entry (case insensitive)')
    p.add_argument('--dry-run', action='store_true',
                   help='Describe the actions that would be performed but do not make any changes to the system')
    p.add_argument('--list', action='store_true',
                   help='Print the list of UEFI boot entries but do not set the BootNext variable')
    p.add_argument('--no-elevate', action='store_true',
                   help='Do not automatically prompt for elevated privileges when required')
    p.add_argument('--no-reboot', action='store_true',
                   help='Do not automatically reboot after setting the BootNext variable')
    p.add_argument('--pause', action='store_true',
                   help='Pause for input when the application is finished running')
    p.add_argument('-o', '--output', choices=['text', 'json'], default='text',
                   help='Format used when printing the boot entries')
    p.add_argument('-v', '--verbose', action='store_true', help='Print diagnostic logging to stderr')
    p.add_argument('--gui', action='store_true', help='Open the desktop window instead of running in the terminal')
    p.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return p


def check_prerequisites(manager: BootManager) -> None:
    if not manager.is_uefi_enabled():
        raise UnsupportedConfiguration()
    for tool in manager.required_tools():
        if common.which(tool) is None:
            raise MissingTool(tool)


def ensure_elevated(elevator: Elevator, required: bool, no_elevate: bool) -> Optional[int]:
    """Returns the elevated child's exit code when this process should stop, else None."""
    if not required or elevator.is_elevated():
        return None
    if no_elevate:
        print('Warning: running without elevated privileges, access to UEFI NVRAM variables may be denied.\n')
        return None
    try:
        return elevator.run_elevated()
    except ElevationFailed as exc:
        raise ElevationFailed(f'failed to re-launch the process with elevated privileges: {exc}') from exc


def run(
    pattern: str,
    manager: BootManager,
    elevator: Elevator,
    dry_run: bool = False,
    list_only: bool = False,
    no_elevate: bool = False,
    no_reboot: bool = False,
    output: str = 'text',
) -> int:
    """Select the boot entry matching `pattern`, set it as BootNext and reboot.

    Returns the process exit code. Errors are raised as BootNextError; when an
    elevated copy ran instead, Relaunched carries its exit code.
    """
    check_prerequisites(manager)

    # Writing NVRAM always needs admin/root; reading only does on some platforms
    will_commit = not dry_run and not list_only
    child_code = ensure_elevated(elevator, manager.elevation_required_to_read or will_commit, no_elevate)
    if child_code is not None:
        logger.debug('Elevated process exited with code %d', child_code)
        raise Relaunched(child_code)

    entries = manager.list_entries()
    print(format_entries(entries, output))

    if list_only:
        return 0

    regex = compile_pattern(pattern)
    print(f'\nMatching boot entries against regular expression "{pattern}"')
    entry = select_entry(entries, regex)
    print(f'Found matching boot entry: "{entry.description}"')

    if dry_run:
        return 0

    print('Setting the BootNext variable...')
    manager.set_boot_next(entry)

    if not no_reboot:
        print('Rebooting now...')
        manager.reboot_now()
    return 0


def run_cli(args: argparse.Namespace, manager: BootManager, elevator: Elevator) -> int:
    if not args.pattern and not args.list:
        raise BootNextError('a pattern must be specified for selecting the target UEFI boot entry')
    return run(
        args.pattern,
        manager,
        elevator,
        dry_run=args.dry_run,
        list_only=args.list,
        no_elevate=args.no_elevate,
        no_reboot=args.no_reboot,
        output=args.output,
    )
