"""Set the UEFI BootNext entry and reboot into it (Linux/Windows)."""

__version__ = '1.0.0'
