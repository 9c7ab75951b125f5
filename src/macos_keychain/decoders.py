"""Parsers for ``security`` output.

The tool has no machine-readable output mode, so these functions work on its
plain text:

- ``list-keychains`` prints one quoted path per line.
- ``find-generic-password -w`` prints the password, or its hex encoding
  when the stored value is not printable (multi-line notes, for example).
- ``dump-keychain`` prints one block per item, each opening with a
  ``keychain: "..."`` line and listing attributes as
  ``"acct"<blob>="value"``.

The dump parser is a delimiter scanner, not a grammar. It assumes attribute
values never span lines and never contain the closing quote, and that a
field's start marker does not appear earlier in the block.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import NamedTuple

_HEX_PAIRS = re.compile(r"(?:[0-9a-f]{2})+", re.IGNORECASE)

# Dump lines end at "\n" only; other line separators stay inside the line
_LINE_BREAK = re.compile(r"(?<=\n)")

# Line prefix opening each item block in dump-keychain output
RECORD_START = "keychain: "

# (start delimiter, end delimiter) per extracted attribute
DUMP_FIELDS: Mapping[str, tuple[str, str]] = {
    "keychain": ('keychain: "', '"'),
    "item_class": ('class: "', '"'),
    "account": ('"acct"<blob>="', '"'),
    "service": ('"svce"<blob>="', '"'),
    "label": ('0x00000007 <blob>="', '"'),
}


class ItemKey(NamedTuple):
    """Lookup key of a generic password item."""

    account: str
    service: str


@dataclass(frozen=True)
class DumpRecord:
    """Attributes of one item block in a keychain dump."""

    keychain: str
    item_class: str
    account: str
    service: str
    label: str

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.account, self.service)


def parse_keychain_list(output: str) -> list[str]:
    """Parse ``list-keychains`` output into a list of paths.

    Only one surrounding pair of double quotes is removed per line; no other
    unescaping is done.
    """
    paths: list[str] = []
    for line in output.strip().split("\n"):
        entry = line.strip()
        if entry.startswith('"'):
            entry = entry[1:]
        if entry.endswith('"'):
            entry = entry[:-1]
        if entry:
            paths.append(entry)
    return paths


def decode_password(output: str) -> str:
    """Return the password printed by ``find-generic-password -w``.

    Hex output is decoded only when the decoded text contains a newline,
    which is how the tool prints multi-line notes. Any other value,
    including one that merely looks like hex, is returned as printed.
    """
    if _HEX_PAIRS.fullmatch(output.strip()):
        decoded = bytes.fromhex(output.strip()).decode("utf-8", errors="replace")
        if "\n" in decoded:
            return decoded
    return output


def split_dump_blocks(output: str) -> list[str]:
    """Split dump output into item blocks, newlines preserved."""
    blocks: list[str] = []
    current: list[str] = []
    for line in _LINE_BREAK.split(output):
        if not line:
            continue
        if line.startswith(RECORD_START) and current:
            blocks.append("".join(current))
            current = []
        current.append(line if line.endswith("\n") else line + "\n")
    if current:
        blocks.append("".join(current))
    return blocks


def extract_field(block: str, start: str, end: str) -> str:
    """Return the text between *start* and the next *end* after it.

    Returns an empty string when *start* does not occur. When *end* is
    missing, the rest of the block is returned.
    """
    begin = block.find(start)
    if begin == -1:
        return ""
    begin += len(start)
    stop = block.find(end, begin)
    if stop == -1:
        return block[begin:]
    return block[begin:stop]


def parse_dump_fields(
    output: str,
    fields: Mapping[str, tuple[str, str]] = DUMP_FIELDS,
) -> list[dict[str, str]]:
    """Extract *fields* from every block of a dump, in block order."""
    return [
        {name: extract_field(block, start, end) for name, (start, end) in fields.items()}
        for block in split_dump_blocks(output)
    ]


def parse_dump(output: str) -> list[DumpRecord]:
    return [DumpRecord(**values) for values in parse_dump_fields(output)]


def parse_item_keys(output: str) -> list[ItemKey]:
    """Return the (account, service) pair of every dump block."""
    return [record.key for record in parse_dump(output)]
