"""
ctypes bindings for the Win32 calls used to elevate the process.

Only constructed by WindowsElevator; importing this module loads nothing.

Public API
----------
Win32Api.is_token_elevated() -> bool
Win32Api.shell_execute(verb, file, parameters, mask, show) -> ShellExecuteResult
Win32Api.wait_for_exit_code(process) -> int
Win32Api.format_error(code) -> str
"""
from __future__ import annotations

import ctypes
from ctypes import wintypes
from typing import NamedTuple, Optional


TOKEN_QUERY = 0x0008
TOKEN_ELEVATION_CLASS = 20  # TokenElevation in TOKEN_INFORMATION_CLASS

INFINITE = 0xFFFFFFFF
WAIT_FAILED = 0xFFFFFFFF


class SHELLEXECUTEINFOW(ctypes.Structure):
    _fields_ = [
        ("cbSize", wintypes.DWORD),
        ("fMask", wintypes.ULONG),
        ("hwnd", wintypes.HWND),
        ("lpVerb", wintypes.LPCWSTR),
        ("lpFile", wintypes.LPCWSTR),
        ("lpParameters", wintypes.LPCWSTR),
        ("lpDirectory", wintypes.LPCWSTR),
        ("nShow", ctypes.c_int),
        ("hInstApp", wintypes.HINSTANCE),
        ("lpIDList", ctypes.c_void_p),
        ("lpClass", wintypes.LPCWSTR),
        ("hkeyClass", wintypes.HKEY),
        ("dwHotKey", wintypes.DWORD),
        ("hIconOrMonitor", wintypes.HANDLE),
        ("hProcess", wintypes.HANDLE),
    ]


class TOKEN_ELEVATION(ctypes.Structure):
    _fields_ = [("TokenIsElevated", wintypes.DWORD)]


class ShellExecuteResult(NamedTuple):
    ok: bool
    inst_app: int  # SE_ERR_* code when ok is False
    last_error: int
    process: Optional[int]


class Win32Api:
    def __init__(self) -> None:
        self.kernel32 = ctypes.WinDLL('kernel32', use_last_error=True)  # type: ignore[attr-defined]
        self.shell32 = ctypes.WinDLL('shell32', use_last_error=True)  # type: ignore[attr-defined]
        self.advapi32 = ctypes.WinDLL('advapi32', use_last_error=True)  # type: ignore[attr-defined]

        self.kernel32.GetCurrentProcess.restype = wintypes.HANDLE
        self.kernel32.CloseHandle.argtypes = [wintypes.HANDLE]
        self.kernel32.WaitForSingleObject.argtypes = [wintypes.HANDLE, wintypes.DWORD]
        self.kernel32.WaitForSingleObject.restype = wintypes.DWORD
        self.kernel32.GetExitCodeProcess.argtypes = [wintypes.HANDLE, ctypes.POINTER(wintypes.DWORD)]
        self.advapi32.OpenProcessToken.argtypes = [wintypes.HANDLE, wintypes.DWORD, ctypes.POINTER(wintypes.HANDLE)]
        self.advapi32.GetTokenInformation.argtypes = [
            wintypes.HANDLE, ctypes.c_int, ctypes.c_void_p, wintypes.DWORD, ctypes.POINTER(wintypes.DWORD),
        ]
        self.shell32.ShellExecuteExW.argtypes = [ctypes.POINTER(SHELLEXECUTEINFOW)]
        self.shell32.ShellExecuteExW.restype = wintypes.BOOL

    def _raise_last_error(self) -> None:
        raise ctypes.WinError(ctypes.get_last_error())  # type: ignore[attr-defined]

    def is_token_elevated(self) -> bool:
        token = wintypes.HANDLE()
        if not self.advapi32.OpenProcessToken(self.kernel32.GetCurrentProcess(), TOKEN_QUERY, ctypes.byref(token)):
            self._raise_last_error()
        try:
            elevation = TOKEN_ELEVATION()
            size = wintypes.DWORD()
            if not self.advapi32.GetTokenInformation(
                token, TOKEN_ELEVATION_CLASS, ctypes.byref(elevation), ctypes.sizeof(elevation), ctypes.byref(size)
            ):
                self._raise_last_error()
            return bool(elevation.TokenIsElevated)
        finally:
            self.kernel32.CloseHandle(token)

    def shell_execute(self, verb: str, file: str, parameters: str, mask: int, show: int) -> ShellExecuteResult:
        info = SHELLEXECUTEINFOW()
        info.cbSize = ctypes.sizeof(SHELLEXECUTEINFOW)
        info.fMask = mask
        info.lpVerb = verb
        info.lpFile = file
        info.lpParameters = parameters
        info.nShow = show
        ok = bool(self.shell32.ShellExecuteExW(ctypes.byref(info)))
        last_error = 0 if ok else ctypes.get_last_error()  # type: ignore[attr-defined]
        return ShellExecuteResult(
            ok=ok,
            inst_app=int(info.hInstApp or 0),
            last_error=last_error,
            process=info.hProcess,
        )

    def wait_for_exit_code(self, process: int) -> int:
        try:
            if self.kernel32.WaitForSingleObject(process, INFINITE) == WAIT_FAILED:
                self._raise_last_error()
            code = wintypes.DWORD()
            if not self.kernel32.GetExitCodeProcess(process, ctypes.byref(code)):
                self._raise_last_error()
            return int(code.value)
        finally:
            self.kernel32.CloseHandle(process)

    def format_error(self, code: int) -> str:
        return ctypes.FormatError(code)  # type: ignore[attr-defined]
