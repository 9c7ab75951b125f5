"""In-memory stand-in for the macOS ``security`` tool.

``FakeSecurityTool`` is a :class:`ProcessRunner` that interprets the same
argument vectors the real tool receives and answers with the same exit codes
and output shapes, so whole-handle workflows can run on any platform.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import pytest

from macos_keychain.errors import ERR_DUPLICATE_ITEM, ERR_ITEM_NOT_FOUND
from macos_keychain.executor import CommandExecutor, CommandOutcome, ProcessRunner

SECURITY = "/usr/bin/security"

_NOT_FOUND = (
    "security: SecKeychainSearchCopyNext: "
    "The specified item could not be found in the keychain.\n"
)
_DUPLICATE = (
    "security: SecKeychainItemCreateFromContent (<default>): "
    "The specified item already exists in the keychain.\n"
)
_NO_SUCH_KEYCHAIN = "security: SecKeychainOpen: The specified keychain could not be found.\n"

# Item attribute flags and the attribute each one sets
_ITEM_FLAGS = {"-a": "account", "-s": "service", "-C": "type", "-D": "kind",
               "-j": "comment", "-l": "label"}


@dataclass
class FakeKeychain:
    password: str | None
    locked: bool = False
    items: list[dict[str, str]] = field(default_factory=list)


class FakeSecurityTool(ProcessRunner):
    """Simulates the keychain verbs used by :class:`Keychain`."""

    def __init__(self) -> None:
        self.keychains: dict[str, FakeKeychain] = {}
        self.search_list: list[str] = []
        self.calls: list[list[str]] = []

    async def spawn(self, command: str, args: Sequence[str]) -> CommandOutcome:
        args = list(args)
        self.calls.append(args)
        verb, rest = args[0], args[1:]
        handler = getattr(self, "_" + verb.replace("-", "_"))
        return handler(rest)

    # -- helpers ---------------------------------------------------------

    @staticmethod
    def _ok(stdout: str = "") -> CommandOutcome:
        return CommandOutcome(0, stdout, "")

    @staticmethod
    def _fail(code: int, stderr: str) -> CommandOutcome:
        return CommandOutcome(code, "", stderr)

    @staticmethod
    def _parse_item_flags(rest: list[str]) -> tuple[dict[str, str], dict[str, object]]:
        attrs: dict[str, str] = {}
        extra: dict[str, object] = {"trusted": []}
        i = 0
        while i < len(rest):
            flag = rest[i]
            if flag in _ITEM_FLAGS:
                attrs[_ITEM_FLAGS[flag]] = rest[i + 1]
                i += 2
            elif flag == "-w" and i + 1 < len(rest):
                extra["password"] = rest[i + 1]
                i += 2
            elif flag == "-w":
                extra["print_password"] = True
                i += 1
            elif flag == "-U":
                extra["replace"] = True
                i += 1
            elif flag in ("-T", "-A"):
                extra["trusted"].append((flag, rest[i + 1]))  # type: ignore[union-attr]
                i += 2
            else:
                i += 1
        return attrs, extra

    @staticmethod
    def _matches(item: dict[str, str], attrs: dict[str, str]) -> bool:
        return all(item.get(key) == value for key, value in attrs.items())

    # -- verbs -----------------------------------------------------------

    def _list_keychains(self, rest: list[str]) -> CommandOutcome:
        if "-s" in rest:
            self.search_list = rest[rest.index("-s") + 1:]
            return self._ok()
        return self._ok("".join(f'    "{path}"\n' for path in self.search_list))

    def _create_keychain(self, rest: list[str]) -> CommandOutcome:
        path = rest[-1]
        if path in self.keychains:
            return self._fail(48, "security: SecKeychainCreate: A keychain with the same name already exists.\n")
        password = rest[rest.index("-p") + 1] if "-p" in rest else None
        self.keychains[path] = FakeKeychain(password=password)
        self.search_list.append(path)
        return self._ok()

    def _delete_keychain(self, rest: list[str]) -> CommandOutcome:
        path = rest[-1]
        if self.keychains.pop(path, None) is None:
            return self._fail(50, _NO_SUCH_KEYCHAIN)
        if path in self.search_list:
            self.search_list.remove(path)
        return self._ok()

    def _lock_keychain(self, rest: list[str]) -> CommandOutcome:
        if rest == ["-a"]:
            for keychain in self.keychains.values():
                keychain.locked = True
            return self._ok()
        self.keychains[rest[-1]].locked = True
        return self._ok()

    def _unlock_keychain(self, rest: list[str]) -> CommandOutcome:
        keychain = self.keychains[rest[-1]]
        if "-p" in rest and rest[rest.index("-p") + 1] != (keychain.password or ""):
            return self._fail(51, "security: SecKeychainUnlock: The user name or passphrase you entered is not correct.\n")
        keychain.locked = False
        return self._ok()

    def _add_generic_password(self, rest: list[str]) -> CommandOutcome:
        keychain = self.keychains.get(rest[-1])
        if keychain is None:
            return self._fail(50, _NO_SUCH_KEYCHAIN)
        attrs, extra = self._parse_item_flags(rest[:-1])
        key = {"account": attrs["account"], "service": attrs["service"]}
        existing = [item for item in keychain.items if self._matches(item, key)]
        if existing and not extra.get("replace"):
            return self._fail(ERR_DUPLICATE_ITEM, _DUPLICATE)
        for item in existing:
            keychain.items.remove(item)
        keychain.items.append({**attrs, "password": str(extra["password"])})
        return self._ok()

    def _find_generic_password(self, rest: list[str]) -> CommandOutcome:
        keychain = self.keychains.get(rest[-1])
        if keychain is None:
            return self._fail(50, _NO_SUCH_KEYCHAIN)
        attrs, _ = self._parse_item_flags(rest[:-1])
        for item in keychain.items:
            if self._matches(item, attrs):
                password = item["password"]
                if "\n" in password:
                    # the real tool prints non-printable values hex-encoded
                    password = password.encode().hex()
                return self._ok(password + "\n")
        return self._fail(ERR_ITEM_NOT_FOUND, _NOT_FOUND)

    def _delete_generic_password(self, rest: list[str]) -> CommandOutcome:
        keychain = self.keychains.get(rest[-1])
        if keychain is None:
            return self._fail(50, _NO_SUCH_KEYCHAIN)
        attrs, _ = self._parse_item_flags(rest[:-1])
        for item in keychain.items:
            if self._matches(item, attrs):
                keychain.items.remove(item)
                return self._ok()
        return self._fail(ERR_ITEM_NOT_FOUND, _NOT_FOUND)

    def _dump_keychain(self, rest: list[str]) -> CommandOutcome:
        path = rest[-1]
        keychain = self.keychains.get(path)
        if keychain is None:
            return self._fail(50, _NO_SUCH_KEYCHAIN)
        lines: list[str] = []
        for item in keychain.items:
            lines += [
                f'keychain: "{path}"',
                "version: 512",
                'class: "genp"',
                "attributes:",
                f'    0x00000007 <blob>="{item["label"]}"' if "label" in item
                else "    0x00000007 <blob>=<NULL>",
                f'    "acct"<blob>="{item["account"]}"',
                f'    "svce"<blob>="{item["service"]}"',
            ]
        return self._ok("".join(line + "\n" for line in lines))


@pytest.fixture
def security_tool() -> FakeSecurityTool:
    return FakeSecurityTool()


@pytest.fixture
def executor(security_tool: FakeSecurityTool) -> CommandExecutor:
    return CommandExecutor(runner=security_tool)
