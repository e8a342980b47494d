"""Enumerate devices already present by crawling sysfs uevent files."""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from ueventkit.matcher import Matcher

BASE_DEVPATH = "/sys/devices"


@dataclass
class Device:
    """A device found in sysfs: its kobject directory and environment."""

    kobj: str
    env: dict[str, str] = field(default_factory=dict)


def event_from_uevent_data(data: bytes | str) -> dict[str, str]:
    """Parse ``name=value`` lines; parsing stops at the first line without '='."""
    if isinstance(data, str):
        data = data.encode("utf-8", errors="surrogateescape")
    lines = data.split(b"\n")
    if lines[-1] == b"":
        lines.pop()
    env: dict[str, str] = {}
    for line in lines:
        if line.endswith(b"\r"):
            line = line[:-1]
        name, sep, value = line.partition(b"=")
        if not sep:
            break
        env[name.decode("utf-8", errors="surrogateescape")] = value.decode(
            "utf-8", errors="surrogateescape"
        )
    return env


def event_from_uevent_file(path: str | os.PathLike[str]) -> dict[str, str]:
    """Read a sysfs uevent file and return its variables."""
    with open(path, "rb") as stream:
        return event_from_uevent_data(stream.read())


def _uevent_files(path: str) -> Iterator[str]:
    with os.scandir(path) as entries:
        ordered = sorted(entries, key=lambda entry: entry.name)
    for entry in ordered:
        if entry.is_dir(follow_symlinks=False):
            yield from _uevent_files(entry.path)
        elif entry.name == "uevent":
            yield entry.path


def existing_devices(
    matcher: Matcher | None = None, base_path: str = BASE_DEVPATH
) -> Iterator[Device]:
    """Return an iterator over devices under ``base_path`` that ``matcher`` accepts.

    Directories are visited in lexical order without following symbolic
    links. A ``subsystem`` link next to a uevent file sets ``SUBSYSTEM``.
    """
    if matcher is not None:
        try:
            matcher.compile()
        except re.error as exc:
            raise ValueError(f"wrong matcher, err: {exc}") from exc
    return _crawl(matcher, os.fspath(base_path))


def _crawl(matcher: Matcher | None, base_path: str) -> Iterator[Device]:
    for path in _uevent_files(base_path):
        env = event_from_uevent_file(path)
        kobj = os.path.dirname(path)
        try:
            link = os.readlink(os.path.join(kobj, "subsystem"))
        except OSError:
            pass
        else:
            env["SUBSYSTEM"] = os.path.basename(link.rstrip("/"))
        if matcher is None or matcher.evaluate_env(env):
            yield Device(kobj=kobj, env=env)