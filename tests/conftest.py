import pytest

from bootnext.models import BootEntry
from bootnext.platforms.common import BootManager, Elevator


class FakeManager(BootManager):
    def __init__(self, entries=None, uefi=True, tools=('efibootmgr',), read_needs_admin=False):
        self.entries = entries if entries is not None else [
            BootEntry('0000', 'Windows Boot Manager'),
            BootEntry('0001', 'ubuntu'),
            BootEntry('0002', 'UEFI OS'),
        ]
        self.uefi = uefi
        self.tools = list(tools)
        self.elevation_required_to_read = read_needs_admin
        self.calls = []

    def is_uefi_enabled(self):
        self.calls.append('is_uefi_enabled')
        return self.uefi

    def required_tools(self):
        return self.tools

    def list_entries(self):
        self.calls.append('list_entries')
        return list(self.entries)

    def set_boot_next(self, entry):
        self.calls.append(('set_boot_next', entry.id))

    def reboot_now(self):
        self.calls.append('reboot_now')


class FakeElevator(Elevator):
    def __init__(self, elevated=True, child_code=0):
        self.elevated = elevated
        self.child_code = child_code
        self.runs = 0
        self.pauses = 0

    def is_elevated(self):
        return self.elevated

    def run_elevated(self):
        self.runs += 1
        return self.child_code

    def pause_for_input(self):
        self.pauses += 1


@pytest.fixture
def manager():
    return FakeManager()


@pytest.fixture
def elevator():
    return FakeElevator()


@pytest.fixture
def all_tools_present(monkeypatch):
    from bootnext.platforms import common
    monkeypatch.setattr(common, 'which', lambda name: '/usr/bin/' + name)
