"""Keychain handle wrapping the macOS ``security`` CLI.

A :class:`Keychain` binds the absolute path of a keychain file. Every
operation builds one argument vector, runs the tool once and decodes the
output. Failures of the tool propagate unchanged as
:class:`~macos_keychain.errors.ExecutionError`; nothing is retried or
translated, and concurrent calls are not serialized.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import TextIO

from macos_keychain import arguments, decoders
from macos_keychain.arguments import GenericPasswordItem, ItemQuery, PreferenceDomain
from macos_keychain.config import load_settings
from macos_keychain.decoders import DumpRecord, ItemKey
from macos_keychain.executor import CommandExecutor, create_executor

logger = logging.getLogger(__name__)

DEFAULT_SECURITY_PATH = "/usr/bin/security"


def resolve_path(path: str | os.PathLike[str]) -> str:
    """Return *path* as an absolute, normalised string."""
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


def _default_executor() -> tuple[CommandExecutor, str]:
    settings = load_settings()
    return create_executor(settings), settings.security.path


class Keychain:
    """Handle on a keychain file.

    Parameters
    ----------
    path:
        Keychain file; resolved to an absolute path once.
    executor:
        Command executor. Defaults to one built from the loaded settings.
    security_path:
        Path of the ``security`` executable. Defaults to the configured
        ``security.path`` when *executor* is not given, otherwise to
        ``/usr/bin/security``.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        executor: CommandExecutor | None = None,
        security_path: str | None = None,
    ) -> None:
        self._path = resolve_path(path)
        if executor is None:
            executor, configured_path = _default_executor()
            security_path = security_path or configured_path
        self._executor = executor
        self._security = security_path or DEFAULT_SECURITY_PATH

    def __repr__(self) -> str:
        return f"Keychain({self._path!r})"

    @property
    def path(self) -> str:
        return self._path

    @property
    def executor(self) -> CommandExecutor:
        return self._executor

    @property
    def security_path(self) -> str:
        return self._security

    async def _run(self, args: list[str]) -> str:
        return await self._executor.run(self._security, args)

    @staticmethod
    async def _run_unbound(
        args: list[str],
        executor: CommandExecutor | None,
        security_path: str | None,
    ) -> str:
        if executor is None:
            executor, configured_path = _default_executor()
            security_path = security_path or configured_path
        return await executor.run(security_path or DEFAULT_SECURITY_PATH, args)

    # ------------------------------------------------------------------
    # Keychain lifecycle
    # ------------------------------------------------------------------

    @classmethod
    async def list_keychains(
        cls,
        domain: PreferenceDomain | str | None = None,
        search: Sequence[str] | None = None,
        executor: CommandExecutor | None = None,
        security_path: str | None = None,
    ) -> list[str]:
        """Return the absolute paths of the keychains in the search list.

        Parameters
        ----------
        domain:
            Preference domain to query instead of the user's default.
        search:
            When given, the search list is *set* to these keychains.
        """
        output = await cls._run_unbound(
            arguments.list_keychains_args(domain, search), executor, security_path
        )
        return decoders.parse_keychain_list(output)

    @classmethod
    async def create(
        cls,
        path: str | os.PathLike[str],
        password: str | None = None,
        executor: CommandExecutor | None = None,
        security_path: str | None = None,
    ) -> Keychain:
        """Create a keychain file and return a handle on it.

        Without *password* an unprotected keychain is created.
        """
        keychain = cls(path, executor=executor, security_path=security_path)
        await keychain._run(arguments.create_keychain_args(keychain.path, password))
        logger.info("Created keychain %s", keychain.path)
        return keychain

    @classmethod
    async def delete(
        cls,
        path: str | os.PathLike[str],
        executor: CommandExecutor | None = None,
        security_path: str | None = None,
    ) -> None:
        """Delete a keychain file and remove it from the search list."""
        resolved = resolve_path(path)
        await cls._run_unbound(arguments.delete_keychain_args(resolved), executor, security_path)
        logger.info("Deleted keychain %s", resolved)

    @classmethod
    def open(
        cls,
        path: str | os.PathLike[str],
        executor: CommandExecutor | None = None,
        security_path: str | None = None,
    ) -> Keychain:
        """Bind a handle to an existing keychain without running anything."""
        return cls(path, executor=executor, security_path=security_path)

    @classmethod
    async def lock_all(
        cls,
        executor: CommandExecutor | None = None,
        security_path: str | None = None,
    ) -> None:
        await cls._run_unbound(arguments.lock_all_keychains_args(), executor, security_path)

    def exists(self) -> bool:
        return os.path.exists(self._path)

    async def lock(self) -> None:
        await self._run(arguments.lock_keychain_args(self._path))

    async def unlock(self, password: str | None = None) -> None:
        """Unlock the keychain; without *password* the tool asks for it."""
        await self._run(arguments.unlock_keychain_args(self._path, password))

    # ------------------------------------------------------------------
    # Generic password items
    # ------------------------------------------------------------------

    async def add_generic_password(self, item: GenericPasswordItem) -> None:
        """Add *item*.

        Fails with the tool's duplicate-item error if an item with the same
        key exists, unless ``item.replace`` is set.
        """
        await self._run(arguments.add_generic_password_args(self._path, item))

    async def find_generic_password(self, query: ItemQuery) -> str:
        """Return the password of the first item matching *query*."""
        output = await self._run(arguments.find_generic_password_args(self._path, query))
        return decoders.decode_password(output)

    async def delete_generic_password(self, query: ItemQuery) -> None:
        await self._run(arguments.delete_generic_password_args(self._path, query))

    async def list_records(self) -> list[DumpRecord]:
        """Return the attributes of every item in the keychain."""
        output = await self._run(arguments.dump_keychain_args(self._path))
        return decoders.parse_dump(output)

    async def list_items(self) -> list[ItemKey]:
        """Return the (account, service) pair of every item in the keychain."""
        output = await self._run(arguments.dump_keychain_args(self._path))
        return decoders.parse_item_keys(output)

    async def dump(self, file: TextIO | None = None) -> None:
        """Print the full dump, including access lists and decrypted data."""
        output = await self._run(
            arguments.dump_keychain_args(self._path, decrypt=True, access=True, raw=True)
        )
        print(output, file=file if file is not None else sys.stdout)
