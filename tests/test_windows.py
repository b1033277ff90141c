from types import SimpleNamespace

import pytest

from bootnext.errors import CommandFailed, CommitFailed, ElevationFailed, QueryFailed
from bootnext.models import BootEntry
from bootnext.platforms import windows
from bootnext.platforms.windows import (
    SE_ERR_ACCESSDENIED, SE_ERR_DLLNOTFOUND, SE_ERR_FNF, SHELL_EXECUTE_ERRORS,
    WindowsBootManager, WindowsElevator, parse_bcdedit_firmware, quote_argument,
)

BCDEDIT_FIRMWARE = (
    "\r\n"
    "Firmware Boot Manager\r\n"
    "---------------------\r\n"
    "identifier              {fwbootmgr}\r\n"
    "displayorder            {bootmgr}\r\n"
    "                        {3a4f5c1e-0000-11ee-9c1d-806e6f6e6963}\r\n"
    "bootsequence            {3a4f5c1e-0000-11ee-9c1d-806e6f6e6963}\r\n"
    "timeout                 0\r\n"
    "\r\n"
    "Windows Boot Manager\r\n"
    "--------------------\r\n"
    "identifier              {bootmgr}\r\n"
    "device                  partition=\\Device\\HarddiskVolume1\r\n"
    "path                    \\EFI\\Microsoft\\Boot\\bootmgfw.efi\r\n"
    "description             Windows Boot Manager\r\n"
    "locale                  en-US\r\n"
    "\r\n"
    "Firmware Application (101fffff)\r\n"
    "-------------------------------\r\n"
    "description             ubuntu\r\n"
    "identifier              {3a4f5c1e-0000-11ee-9c1d-806e6f6e6963}\r\n"
    "device                  partition=\\Device\\HarddiskVolume1\r\n"
    "\r\n"
    "Firmware Application (101fffff)\r\n"
    "-------------------------------\r\n"
    "identifier              {3a4f5c1f-0000-11ee-9c1d-806e6f6e6963}\r\n"
    "device                  partition=\\Device\\HarddiskVolume3\r\n"
    "\r\n"
    "Firmware Application (101fffff)\r\n"
    "-------------------------------\r\n"
    "identifier              {3a4f5c20-0000-11ee-9c1d-806e6f6e6963}\r\n"
    "description             UEFI OS\r\n"
)


def test_parse_bcdedit_firmware():
    entries = parse_bcdedit_firmware(BCDEDIT_FIRMWARE)
    assert [(e.id, e.description) for e in entries] == [
        ('{bootmgr}', 'Windows Boot Manager'),
        ('{3a4f5c1e-0000-11ee-9c1d-806e6f6e6963}', 'ubuntu'),
        ('{3a4f5c20-0000-11ee-9c1d-806e6f6e6963}', 'UEFI OS'),
    ]
    assert [e.is_next for e in entries] == [False, True, False]


def test_parse_bcdedit_firmware_chinese():
    text = (
        "固件启动管理器\n"
        "---------------------\n"
        "标识符                  {fwbootmgr}\n"
        "\n"
        "Windows 启动管理器\n"
        "--------------------\n"
        "标识符                  {bootmgr}\n"
        "描述                    Windows Boot Manager\n"
    )
    entries = parse_bcdedit_firmware(text)
    assert entries == [BootEntry('{bootmgr}', 'Windows Boot Manager')]


def test_parse_bcdedit_firmware_ignores_lines_before_first_separator():
    text = "identifier {stray}\ndescription stray\n"
    assert parse_bcdedit_firmware(text) == []


@pytest.mark.parametrize('arg,expected', [
    ('say "hi"\\', '"say \\"hi\\""'),
    ('C:\\path\\', '"C:\\\\path"'),
    ('C:\\path\\file', '"C:\\\\path\\\\file"'),
    ('plain', '"plain"'),
    ('', '""'),
    ('\\', '""'),
])
def test_quote_argument(arg, expected):
    assert quote_argument(arg) == expected


def test_is_uefi_enabled(monkeypatch):
    commands = []

    def capture(command, hide_window=False):
        commands.append(command)
        return 'uefi\r\n'

    monkeypatch.setattr(windows, 'capture_output', capture)
    assert WindowsBootManager().is_uefi_enabled()
    assert commands[0][0] == 'powershell.exe'

    monkeypatch.setattr(windows, 'capture_output', lambda command, hide_window=False: 'Legacy\n')
    assert not WindowsBootManager().is_uefi_enabled()


def test_is_uefi_enabled_failure(monkeypatch):
    def capture(command, hide_window=False):
        raise CommandFailed(command, 1, 'boom')

    monkeypatch.setattr(windows, 'capture_output', capture)
    with pytest.raises(QueryFailed):
        WindowsBootManager().is_uefi_enabled()


def test_list_entries(monkeypatch):
    commands = []

    def capture(command, hide_window=False):
        commands.append(command)
        return BCDEDIT_FIRMWARE

    monkeypatch.setattr(windows, 'capture_output', capture)
    manager = WindowsBootManager()
    assert manager.required_tools() == ['bcdedit']
    assert manager.elevation_required_to_read
    assert len(manager.list_entries()) == 3
    assert commands == [['bcdedit', '/enum', 'firmware']]


def test_list_entries_failure(monkeypatch):
    def capture(command, hide_window=False):
        raise CommandFailed(command, 1, 'The boot configuration data store could not be opened.')

    monkeypatch.setattr(windows, 'capture_output', capture)
    with pytest.raises(QueryFailed):
        WindowsBootManager().list_entries()


def test_set_boot_next(monkeypatch):
    commands = []
    monkeypatch.setattr(windows, 'capture_output', lambda command, hide_window=False: commands.append(command) or '')
    WindowsBootManager().set_boot_next(BootEntry('{3a4f5c1e-0000-11ee-9c1d-806e6f6e6963}', 'ubuntu'))
    assert commands == [['bcdedit', '/set', '{fwbootmgr}', 'bootsequence', '{3a4f5c1e-0000-11ee-9c1d-806e6f6e6963}']]


def test_set_boot_next_failure(monkeypatch):
    def capture(command, hide_window=False):
        raise CommandFailed(command, 1, 'Access is denied.')

    monkeypatch.setattr(windows, 'capture_output', capture)
    with pytest.raises(CommitFailed):
        WindowsBootManager().set_boot_next(BootEntry('{bootmgr}', 'Windows Boot Manager'))


class FakeWin32Api:
    def __init__(self, ok=True, inst_app=42, last_error=0, exit_code=0, error_text=''):
        self.ok = ok
        self.inst_app = inst_app
        self.last_error = last_error
        self.exit_code = exit_code
        self.error_text = error_text
        self.executed = []
        self.waited = []

    def is_token_elevated(self):
        return False

    def shell_execute(self, verb, file, parameters, mask, show):
        self.executed.append((verb, file, parameters, mask, show))
        return SimpleNamespace(ok=self.ok, inst_app=self.inst_app, last_error=self.last_error, process=1234)

    def wait_for_exit_code(self, process):
        self.waited.append(process)
        return self.exit_code

    def format_error(self, code):
        return self.error_text


def _elevator(api, command=('C:\\bootnext.exe', 'ubuntu', '--no-reboot')):
    return WindowsElevator(api=api, command_factory=lambda: list(command))


@pytest.mark.parametrize('exit_code', [0, 1, 3221225786])
def test_run_elevated(exit_code):
    api = FakeWin32Api(exit_code=exit_code)
    assert _elevator(api).run_elevated() == exit_code

    verb, file, parameters, mask, _show = api.executed[0]
    assert verb == 'runas'
    assert file == 'C:\\bootnext.exe'
    assert parameters == '"ubuntu" "--no-reboot" "--pause"'
    assert mask & windows.SEE_MASK_NOCLOSEPROCESS
    assert api.waited == [1234]


def test_run_elevated_does_not_duplicate_pause_flag():
    api = FakeWin32Api()
    _elevator(api, command=('C:\\bootnext.exe', '--pause', 'ubuntu')).run_elevated()
    assert api.executed[0][2] == '"--pause" "ubuntu"'


@pytest.mark.parametrize('code', [SE_ERR_FNF, SE_ERR_ACCESSDENIED, SE_ERR_DLLNOTFOUND])
def test_run_elevated_known_failures(code):
    api = FakeWin32Api(ok=False, inst_app=code)
    with pytest.raises(ElevationFailed) as err:
        _elevator(api).run_elevated()
    assert str(err.value) == SHELL_EXECUTE_ERRORS[code]
    assert api.waited == []


def test_shell_execute_error_messages_are_distinct():
    assert len(set(SHELL_EXECUTE_ERRORS.values())) == len(SHELL_EXECUTE_ERRORS) == 11


def test_run_elevated_unknown_failure_uses_system_text():
    api = FakeWin32Api(ok=False, inst_app=42, last_error=1223, error_text='The operation was canceled by the user.')
    with pytest.raises(ElevationFailed) as err:
        _elevator(api).run_elevated()
    assert str(err.value) == 'The operation was canceled by the user.'


def test_run_elevated_unknown_failure_without_system_text():
    api = FakeWin32Api(ok=False, inst_app=0, last_error=9999, error_text='')
    with pytest.raises(ElevationFailed) as err:
        _elevator(api).run_elevated()
    assert '9999' in str(err.value)


def test_is_elevated_uses_token():
    assert not WindowsElevator(api=FakeWin32Api()).is_elevated()


def test_run_elevated_without_pause_for_gui_child():
    api = FakeWin32Api()
    elevator = WindowsElevator(
        api=api, command_factory=lambda: ['C:\\bootnext.exe', '--gui'], pause_child=False,
    )
    elevator.run_elevated()
    assert api.executed[0][2] == '"--gui"'
