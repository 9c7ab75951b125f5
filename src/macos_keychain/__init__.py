"""macos-keychain -- async facade over the macOS ``security`` tool."""

from pathlib import Path as _Path

from macos_keychain.arguments import (
    GenericPasswordItem,
    ItemQuery,
    ItemType,
    PreferenceDomain,
    TrustAll,
    TrustApplications,
    TrustNone,
)
from macos_keychain.decoders import DumpRecord, ItemKey
from macos_keychain.errors import ExecutionError, KeychainError, PermissionDeniedError
from macos_keychain.keychain import Keychain


def _read_version() -> str:
    """Read version from the repo-level VERSION file if one exists."""
    for parent in _Path(__file__).resolve().parents:
        candidate = parent / "VERSION"
        if candidate.is_file():
            return candidate.read_text().strip()
    return "0.1.0"


__version__ = _read_version()

__all__ = [
    "DumpRecord",
    "ExecutionError",
    "GenericPasswordItem",
    "ItemKey",
    "ItemQuery",
    "ItemType",
    "Keychain",
    "KeychainError",
    "PermissionDeniedError",
    "PreferenceDomain",
    "TrustAll",
    "TrustApplications",
    "TrustNone",
]
