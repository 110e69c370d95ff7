"""Name and content derivation for index entries.

Pure helpers turning a container group into the entry name used under the
index root and the message body posted into that entry. The body starts with
a short fingerprint of the group's substantive content so the executor can
detect "nothing changed" by comparing a fixed-length prefix.
"""

from __future__ import annotations

import hashlib
import json
import re
import unicodedata
from collections.abc import Iterable

from .const import DEFAULT_NAME_PREFIX, FINGERPRINT_LENGTH
from .exceptions import FingerprintError
from .models import ContainerGroup, DesiredEntry, Item

# Runs of ASCII punctuation and spaces collapse into a single dash
SYMBOL_RE = re.compile(r"[ !\"#$%&'()*+,\-./:;<=>?@\[\\\]^_`{|}~]+")

# Unicode name prefixes of the scripts kept in entry names
_ALLOWED_NAME_PREFIXES: tuple[str, ...] = (
    "LATIN ",
    "FULLWIDTH LATIN ",
    "HIRAGANA ",
    "KATAKANA",
    "HALFWIDTH KATAKANA ",
    "CJK UNIFIED IDEOGRAPH",
    "CJK COMPATIBILITY IDEOGRAPH",
    "CJK RADICAL ",
    "KANGXI RADICAL ",
    "HANGZHOU NUMERAL ",
)
# Han-script marks whose names carry no script prefix
_HAN_MARKS = "々〆〇〻"
_ALLOWED_CHARS: frozenset[str] = frozenset("0123456789～ー-" + _HAN_MARKS)


def _is_allowed_char(char: str) -> bool:
    if char in _ALLOWED_CHARS:
        return True
    return unicodedata.name(char, "").startswith(_ALLOWED_NAME_PREFIXES)


def slugify(text: str) -> str:
    """Return a lower-case slug keeping Latin, kana, CJK letters and digits."""

    if not text:
        return ""
    replaced = SYMBOL_RE.sub("-", text)
    return "".join(ch for ch in replaced if _is_allowed_char(ch)).lower()


def build_entry_name(
    container_name: str,
    *,
    prefix: str = DEFAULT_NAME_PREFIX,
    strip_pattern: re.Pattern[str] | None = None,
) -> str:
    """Derive the index entry name for a container.

    ``strip_pattern`` removes a decoration at the start of the container name
    (for example an emoji and separator) before slugging.
    """

    name = container_name
    if strip_pattern is not None:
        name = strip_pattern.sub("", name, count=1)
    return f"{prefix}{slugify(name)}"


def compute_fingerprint(children: Iterable[Item]) -> str:
    """Hash the ordered (id, description) pairs of ``children``.

    Raises FingerprintError when the pairs cannot be encoded.
    """

    pairs = [[child.id, child.description or ""] for child in children]
    try:
        encoded = json.dumps(pairs, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise FingerprintError("failed to encode entry children for fingerprint") from exc
    return hashlib.sha256(encoded).hexdigest()[:FINGERPRINT_LENGTH]


def build_entry_content(fingerprint: str, children: Iterable[Item]) -> str:
    """Render the entry body: fingerprint line, then one reference per child."""

    lines = [fingerprint]
    for child in children:
        lines.append(f"- <#{child.id}>")
        if child.description:
            lines.append(f"    - {child.description}")
    return "\n".join(lines)


def content_fingerprint(content: str | None) -> str | None:
    """Return the fingerprint prefix of an entry body, or None if too short."""

    if content is None or len(content) < FINGERPRINT_LENGTH:
        return None
    return content[:FINGERPRINT_LENGTH]


def derive_entry(
    group: ContainerGroup,
    *,
    prefix: str = DEFAULT_NAME_PREFIX,
    strip_pattern: re.Pattern[str] | None = None,
) -> DesiredEntry:
    fingerprint = compute_fingerprint(group.children)
    return DesiredEntry(
        name=build_entry_name(group.container.name, prefix=prefix, strip_pattern=strip_pattern),
        content=build_entry_content(fingerprint, group.children),
        fingerprint=fingerprint,
        container_id=group.container.id,
        member_ids=tuple(child.id for child in group.children),
    )
