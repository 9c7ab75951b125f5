"""Argument vectors for ``security`` sub-commands.

Every builder is a pure function returning the argument list that follows
the executable path. Optional fields contribute a ``[flag, value]`` pair only
when set. Item flags are always emitted in the same order: account, service,
replace, type, kind, comment, label, then the operation's own trailing flags
and finally the keychain path.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass


class PreferenceDomain(enum.Enum):
    """Preference domain searched by ``list-keychains``."""

    USER = "user"
    SYSTEM = "system"
    COMMON = "common"
    DYNAMIC = "dynamic"


class ItemType(enum.Enum):
    """Item type code passed with ``-C``."""

    NOTE = "note"


# ---------------------------------------------------------------------------
# Trusted applications
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrustApplications:
    """Trust each listed application path individually."""

    paths: tuple[str, ...] = ()


@dataclass(frozen=True)
class TrustAll:
    """Any application may access the item without prompting."""


@dataclass(frozen=True)
class TrustNone:
    """No application may access the item without prompting."""


TrustedApplications = TrustApplications | TrustAll | TrustNone


def coerce_trust(
    value: TrustedApplications | Sequence[str] | bool | None,
) -> TrustedApplications | None:
    """Map the ``list | bool`` shorthand onto a trusted-applications variant."""
    if value is None or isinstance(value, (TrustApplications, TrustAll, TrustNone)):
        return value
    if value is True:
        return TrustAll()
    if value is False:
        return TrustNone()
    if isinstance(value, str):
        raise TypeError("applications must be a sequence of paths, not a single string")
    return TrustApplications(tuple(value))


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ItemQuery:
    """Identifies generic password items by account and service.

    The optional discriminators narrow the match. An omitted discriminator
    matches any value, so an item created with a ``kind`` is still found by
    a query without one.
    """

    account: str
    service: str
    type: ItemType | None = None
    kind: str | None = None
    comment: str | None = None
    label: str | None = None

    def __post_init__(self) -> None:
        if not self.account:
            raise ValueError("account must not be empty")
        if not self.service:
            raise ValueError("service must not be empty")
        if isinstance(self.type, str):
            object.__setattr__(self, "type", ItemType(self.type))

    def query(self) -> ItemQuery:
        """Return just the lookup key and discriminators."""
        return ItemQuery(
            account=self.account,
            service=self.service,
            type=self.type,
            kind=self.kind,
            comment=self.comment,
            label=self.label,
        )


@dataclass(frozen=True, kw_only=True)
class GenericPasswordItem(ItemQuery):
    """A generic password item to be added to a keychain."""

    password: str
    applications: TrustedApplications | Sequence[str] | bool | None = None
    replace: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "applications", coerce_trust(self.applications))


def _query_flags(query: ItemQuery) -> list[str]:
    return ["-a", query.account, "-s", query.service]


def _discriminator_flags(query: ItemQuery) -> list[str]:
    args: list[str] = []
    if query.type is not None:
        args += ["-C", query.type.value]
    if query.kind is not None:
        args += ["-D", query.kind]
    if query.comment is not None:
        args += ["-j", query.comment]
    if query.label is not None:
        args += ["-l", query.label]
    return args


def trust_flags(applications: TrustedApplications | None) -> list[str]:
    """Flags granting access to *applications*."""
    if applications is None:
        return []
    if isinstance(applications, TrustAll):
        return ["-A", ""]
    if isinstance(applications, TrustNone):
        return ["-T", ""]
    args: list[str] = []
    for path in applications.paths:
        args += ["-T", path]
    return args


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def list_keychains_args(
    domain: PreferenceDomain | str | None = None,
    search: Sequence[str] | None = None,
) -> list[str]:
    args = ["list-keychains"]
    if domain is not None:
        args += ["-d", PreferenceDomain(domain).value]
    if search is not None:
        args += ["-s", *search]
    return args


def create_keychain_args(path: str, password: str | None = None) -> list[str]:
    """``create-keychain``; no password means an unprotected keychain (``-P``)."""
    args = ["create-keychain"]
    if password is not None:
        args += ["-p", password]
    else:
        args.append("-P")
    args.append(path)
    return args


def delete_keychain_args(path: str) -> list[str]:
    return ["delete-keychain", path]


def add_generic_password_args(path: str, item: GenericPasswordItem) -> list[str]:
    args = ["add-generic-password", *_query_flags(item)]
    if item.replace:
        args.append("-U")
    args += _discriminator_flags(item)
    args += trust_flags(coerce_trust(item.applications))
    args += ["-w", item.password, path]
    return args


def delete_generic_password_args(path: str, query: ItemQuery) -> list[str]:
    return ["delete-generic-password", *_query_flags(query), *_discriminator_flags(query), path]


def find_generic_password_args(path: str, query: ItemQuery) -> list[str]:
    """``find-generic-password`` printing only the password (``-w``)."""
    return [
        "find-generic-password",
        *_query_flags(query),
        *_discriminator_flags(query),
        "-w",
        path,
    ]


def dump_keychain_args(
    path: str,
    decrypt: bool = False,
    access: bool = False,
    raw: bool = False,
) -> list[str]:
    """``dump-keychain`` with the ``-a``/``-d``/``-r`` switches combined."""
    switches = ""
    if access:
        switches += "a"
    if decrypt:
        switches += "d"
    if raw:
        switches += "r"
    args = ["dump-keychain"]
    if switches:
        args.append(f"-{switches}")
    args.append(path)
    return args


def unlock_keychain_args(path: str, password: str | None = None) -> list[str]:
    """``unlock-keychain``; without a password the tool prompts (``-u``)."""
    args = ["unlock-keychain"]
    if password is not None:
        args += ["-p", password]
    else:
        args.append("-u")
    args.append(path)
    return args


def lock_keychain_args(path: str) -> list[str]:
    return ["lock-keychain", path]


def lock_all_keychains_args() -> list[str]:
    return ["lock-keychain", "-a"]
