"""Netlink connection that receives kobject uevents from the kernel or udev."""

from __future__ import annotations

import errno
import logging
import mmap
import re
import socket
from collections.abc import Iterator
from enum import IntEnum

from ueventkit.matcher import Matcher
from ueventkit.uevent import UEvent, UEventFormatError, parse_uevent

logger = logging.getLogger(__name__)

AF_NETLINK = getattr(socket, "AF_NETLINK", 16)
NETLINK_KOBJECT_UEVENT = getattr(socket, "NETLINK_KOBJECT_UEVENT", 15)
_PAGE_SIZE = mmap.PAGESIZE


class Mode(IntEnum):
    """Event source: raw kernel events or events already processed by udev."""

    KERNEL_EVENT = 1
    # Udev events are richer: vendor information, serial numbers and more.
    UDEV_EVENT = 2


class UEventConn:
    """A socket subscribed to kobject uevents.

    ``matched_uevent_limit`` stops :meth:`monitor` after that many matched
    events; zero means no limit.
    """

    def __init__(
        self, sock: socket.socket | None = None, matched_uevent_limit: int = 0
    ) -> None:
        self.sock = sock
        self.matched_uevent_limit = matched_uevent_limit

    def connect(self, mode: Mode = Mode.UDEV_EVENT) -> UEventConn:
        """Open a netlink socket bound to the multicast group of ``mode``."""
        sock = socket.socket(AF_NETLINK, socket.SOCK_RAW, NETLINK_KOBJECT_UEVENT)
        try:
            sock.bind((0, int(mode)))
        except OSError:
            sock.close()
            raise
        self.sock = sock
        return self

    def close(self) -> None:
        """Close the socket, if open."""
        if self.sock is not None:
            self.sock.close()
            self.sock = None

    def __enter__(self) -> UEventConn:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _socket(self) -> socket.socket:
        if self.sock is None:
            raise OSError(errno.EBADF, "connection is not open")
        return self.sock

    def _pending_size(self) -> int:
        """Return a buffer size large enough for the next message."""
        sock = self._socket()
        size = _PAGE_SIZE
        while True:
            data = sock.recv(size, socket.MSG_PEEK)
            if len(data) < size:
                return size
            size += _PAGE_SIZE

    def read_msg(self) -> bytes:
        """Block until a whole message is available and return it."""
        size = self._pending_size()
        return self._socket().recv(size)

    def read_uevent(self) -> UEvent:
        """Read and parse one uevent."""
        return parse_uevent(self.read_msg())

    def monitor(self, matcher: Matcher | None = None) -> Iterator[UEvent]:
        """Return an iterator over received uevents that ``matcher`` accepts.

        Messages that cannot be parsed are logged and skipped; read errors
        end the iteration by raising.
        """
        if matcher is not None:
            try:
                matcher.compile()
            except re.error as exc:
                raise ValueError(f"wrong matcher, err: {exc}") from exc
        return self._monitor(matcher)

    def _monitor(self, matcher: Matcher | None) -> Iterator[UEvent]:
        count = 0
        while True:
            message = self.read_msg()
            try:
                event = parse_uevent(message)
            except UEventFormatError as exc:
                logger.warning("unable to parse uevent, err: %s", exc)
                continue
            if matcher is not None and not matcher.evaluate(event):
                continue
            yield event
            count += 1
            if 0 < self.matched_uevent_limit <= count:
                return