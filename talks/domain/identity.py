"""Deterministic identity derivation and the casual PIN check.

A uid is derived from ``(group, nickname)`` so the same pair always maps to
the same user record, across processes and devices, without any lookup table
in the store. The hash is the 32-bit ``h * 31 + c`` rolling hash the browser
client has always written, so uids and PIN hashes already stored in existing
groups keep matching.

None of this is security. The PIN only stops two people from accidentally
sharing a nickname.
"""

from dataclasses import dataclass

UID_PREFIX = "user_"

_MASK = 0xFFFFFFFF
_SIGN_BIT = 0x80000000


def rolling_hash(text: str) -> int:
    """Return the signed 32-bit rolling hash of ``text``.

    Folds UTF-16 code units, which is what ``String.charCodeAt`` yields in the
    browser, so astral characters hash the same way on both sides.
    """
    data = text.encode("utf-16-le", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & _MASK
    if h & _SIGN_BIT:
        h -= 1 << 32
    return h


def _hex(value: int) -> str:
    return format(abs(value), "x")


def derive_uid(group: str, nickname: str) -> str:
    """Return the stable uid for a nickname within a group."""
    return UID_PREFIX + _hex(rolling_hash(f"{group.lower()}:{nickname.lower()}"))


def hash_pin(pin: str, group: str) -> str:
    """Return the hex PIN hash, salted with the group name as typed."""
    return _hex(rolling_hash(f"{pin}{group}"))


def verify_pin(stored_hash: str | None, supplied_pin: str | None, group: str) -> bool:
    """Check a supplied PIN against the hash on record.

    Users created before PINs existed have no hash and always pass.
    """
    if not stored_hash:
        return True
    if supplied_pin is None:
        return False
    return hash_pin(supplied_pin, group) == stored_hash


@dataclass(frozen=True)
class Identity:
    """A claim on a nickname within a group, computed per registration attempt."""

    group_name: str
    nickname: str
    uid: str
    pin_hash: str | None = None

    @classmethod
    def claim(cls, group_name: str, nickname: str, pin: str | None = None) -> "Identity":
        return cls(
            group_name=group_name,
            nickname=nickname,
            uid=derive_uid(group_name, nickname),
            pin_hash=hash_pin(pin, group_name) if pin else None,
        )
