"""Error types raised by keychain operations.

Every failure of the ``security`` tool surfaces as an :class:`ExecutionError`
carrying the tool's exit code and stderr verbatim. No exit code is translated
into a more specific exception; callers that care about "not found" or
"duplicate" compare ``error.code`` against the constants below.
"""

from __future__ import annotations

# Sentinel code for an execution request that was not authorized
PERMISSION_DENIED_CODE = 403

# Exit code when a duplicate item already exists in Keychain
ERR_DUPLICATE_ITEM = 45
# Exit code when an item is not found in Keychain
ERR_ITEM_NOT_FOUND = 44


class KeychainError(Exception):
    """Base class for all keychain failures.

    Parameters
    ----------
    code:
        Numeric failure code (process exit code or a fixed sentinel).
    message:
        Human-readable message; ``str(error)`` returns exactly this text.
    """

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


class ExecutionError(KeychainError):
    """The ``security`` tool exited with a non-zero status."""

    def __init__(self, exit_code: int, stderr: str) -> None:
        super().__init__(exit_code, stderr)
        self.stderr = stderr

    @property
    def exit_code(self) -> int:
        return self.code

    def __repr__(self) -> str:
        return f"ExecutionError(exit_code={self.code!r}, stderr={self.stderr!r})"


class PermissionDeniedError(KeychainError):
    """Running the command was not authorized; nothing was spawned."""

    def __init__(self, command: str) -> None:
        super().__init__(PERMISSION_DENIED_CODE, f"Permission denied to execute {command}")
        self.command = command
