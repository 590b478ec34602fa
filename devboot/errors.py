"""Project-specific exception types."""

from __future__ import annotations


class DevbootError(RuntimeError):
    """Base error for domain-level devboot failures."""

    exit_code = 1


class UnsupportedPlatformError(DevbootError):
    """Raised when the Provisioner runs on an operating system it does not support."""


class HostPreconditionError(DevbootError):
    """Raised when the harness host lacks a required capability (OS, arch, tart)."""


class MissingAnswerError(DevbootError):
    """Raised when a scripted run reaches a question it has no answer for."""


class ReadinessTimeoutError(DevbootError, TimeoutError):
    """Raised when a VM does not become reachable within the wait budget."""


class VMNotReachableError(DevbootError):
    """Raised when a remote command is attempted before the VM is reachable."""


class RemoteCommandError(DevbootError):
    """Raised when a required command inside the guest exits non-zero."""

    def __init__(self, message: str, code: int = 1):
        super().__init__(message)
        self.code = code
