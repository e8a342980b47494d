"""Kernel and udev uevent messages: actions, parsing and serialisation."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field

LIBUDEV_MAGIC = 0xFEEDCAFE
_LIBUDEV_PREFIX = b"libudev\x00"
_MIN_LIBUDEV_LENGTH = 40


class KObjAction(str, enum.Enum):
    """Action carried by a kobject uevent."""

    ADD = "add"
    REMOVE = "remove"
    CHANGE = "change"
    MOVE = "move"
    ONLINE = "online"
    OFFLINE = "offline"
    BIND = "bind"
    UNBIND = "unbind"

    def __str__(self) -> str:
        return self.value


class UEventFormatError(ValueError):
    """Raised when a uevent message or action cannot be parsed."""

    def __init__(self, message: str = "wrong uevent format") -> None:
        super().__init__(message)


def _decode(chunk: bytes) -> str:
    return chunk.decode("utf-8", errors="surrogateescape")


def _encode(text: str) -> bytes:
    return text.encode("utf-8", errors="surrogateescape")


def parse_kobj_action(raw: str) -> KObjAction:
    """Return the action named by ``raw``; names are case sensitive."""
    try:
        return KObjAction(raw)
    except ValueError:
        raise UEventFormatError(f"unknow kobject action (got: {raw})") from None


@dataclass
class UEvent:
    """A uevent: an action on a kobject with its environment."""

    action: KObjAction
    kobj: str
    env: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"{self.action}@{self.kobj}\x00"]
        parts.extend(f"{key}={value}\x00" for key, value in self.env.items())
        return "".join(parts)

    def to_bytes(self) -> bytes:
        """Serialise in the kernel wire format."""
        return _encode(str(self))

    def _mismatch(self, other: UEvent) -> str | None:
        if self.action != other.action:
            return f"wrong action (got: {self.action}, wanted: {other.action})"
        if self.kobj != other.kobj:
            return f"wrong kobject (got: {self.kobj}, wanted: {other.kobj})"
        if len(self.env) != len(other.env):
            return f"wrong length of env (got: {len(self.env)}, wanted: {len(other.env)})"
        for key, value in self.env.items():
            if key not in other.env or other.env[key] != value:
                return f"unable to find {key}={value} env var from uevent"
        return None

    def equal(self, other: UEvent) -> bool:
        """Return True when action, kobject and environment all agree."""
        return self._mismatch(other) is None


def _split_pair(chunk: bytes, message: str) -> tuple[str, str]:
    parts = chunk.split(b"=")
    if len(parts) != 2:
        raise UEventFormatError(message)
    return _decode(parts[0]), _decode(parts[1])


def _parse_udev_event(raw: bytes) -> UEvent:
    magic = int.from_bytes(raw[8:12], "big")
    if magic != LIBUDEV_MAGIC:
        raise UEventFormatError("cannot parse libudev event: magic number mismatch")

    # The payload offset is stored in the platform's native byte order.
    (payload_offset,) = struct.unpack_from("=I", raw, 16)
    if payload_offset >= len(raw):
        raise UEventFormatError("cannot parse libudev event: invalid data offset")

    fields = raw[payload_offset:].split(b"\x00")
    env = dict(
        _split_pair(chunk, "cannot parse libudev event: invalid env data")
        for chunk in fields[:-1]
    )
    action = parse_kobj_action(env.get("ACTION", "").lower())
    return UEvent(action=action, kobj=env.get("DEVPATH", ""), env=env)


def parse_uevent(raw: bytes) -> UEvent:
    """Parse a kernel or libudev uevent message."""
    raw = bytes(raw)
    if len(raw) > _MIN_LIBUDEV_LENGTH and raw[:8] == _LIBUDEV_PREFIX:
        return _parse_udev_event(raw)

    fields = raw.split(b"\x00")
    headers = fields[0].split(b"@")
    if len(headers) != 2:
        raise UEventFormatError()

    try:
        action = parse_kobj_action(_decode(headers[0]))
    except UEventFormatError:
        raise UEventFormatError() from None

    env = dict(_split_pair(chunk, "wrong uevent format") for chunk in fields[1:-1])
    return UEvent(action=action, kobj=_decode(headers[1]), env=env)