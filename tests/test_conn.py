import logging
import mmap
import socket
from unittest.mock import patch

import pytest

from ueventkit.conn import NETLINK_KOBJECT_UEVENT, Mode, UEventConn
from ueventkit.matcher import RuleDefinition
from ueventkit.uevent import KObjAction, UEvent


@pytest.fixture
def pair():
    left, right = socket.socketpair(socket.AF_UNIX, socket.SOCK_DGRAM)
    conn = UEventConn(sock=left)
    yield conn, right
    conn.close()
    right.close()


def _event(action, kobj, **env):
    return UEvent(action=action, kobj=kobj, env=dict(env))


def test_read_msg_returns_whole_datagram(pair):
    conn, peer = pair
    peer.send(b"add@/devices/foo\x00A=1\x00")
    assert conn.read_msg() == b"add@/devices/foo\x00A=1\x00"


def test_read_msg_larger_than_a_page(pair):
    conn, peer = pair
    payload = b"x" * (3 * mmap.PAGESIZE + 5)
    peer.send(payload)
    assert conn.read_msg() == payload


def test_read_uevent_round_trip(pair):
    conn, peer = pair
    event = _event(KObjAction.REMOVE, "mykobj", bla="bla", abl="abl", lab="lab")
    peer.send(event.to_bytes())
    assert conn.read_uevent() == event


def test_monitor_filters_skips_invalid_and_stops_at_limit(pair, caplog):
    conn, peer = pair
    conn.matched_uevent_limit = 2
    first = _event(KObjAction.ADD, "/devices/a", DEVNAME="a")
    removed = _event(KObjAction.REMOVE, "/devices/b", DEVNAME="b")
    third = _event(KObjAction.ADD, "/devices/c", DEVNAME="c")
    peer.send(first.to_bytes())
    peer.send(b"garbage without header\x00")
    peer.send(removed.to_bytes())
    peer.send(third.to_bytes())
    with caplog.at_level(logging.WARNING):
        received = list(conn.monitor(RuleDefinition(action="add")))
    assert received == [first, third]
    assert "unable to parse uevent" in caplog.text


def test_monitor_without_matcher_yields_everything(pair):
    conn, peer = pair
    conn.matched_uevent_limit = 1
    event = _event(KObjAction.CHANGE, "/devices/x", SEQNUM="1")
    peer.send(event.to_bytes())
    assert list(conn.monitor()) == [event]


def test_monitor_rejects_invalid_matcher(pair):
    conn, _ = pair
    with pytest.raises(ValueError, match="wrong matcher"):
        conn.monitor(RuleDefinition(action="("))


def test_connect_binds_to_mode_group():
    with patch("socket.socket") as factory:
        conn = UEventConn()
        conn.connect(Mode.UDEV_EVENT)
    assert factory.call_args.args[2] == NETLINK_KOBJECT_UEVENT == 15
    factory.return_value.bind.assert_called_once_with((0, 2))
    assert conn.sock is factory.return_value


def test_connect_kernel_mode_group():
    with patch("socket.socket") as factory:
        conn = UEventConn()
        conn.connect(Mode.KERNEL_EVENT)
    assert conn.sock is factory.return_value
    assert factory.return_value.bind.call_args.args[0] == (0, 1)


def test_connect_closes_socket_when_bind_fails():
    with patch("socket.socket") as factory:
        factory.return_value.bind.side_effect = OSError("bind failed")
        conn = UEventConn()
        with pytest.raises(OSError, match="bind failed"):
            conn.connect(Mode.UDEV_EVENT)
    factory.return_value.close.assert_called_once_with()
    assert conn.sock is None


def test_context_manager_closes_socket():
    left, right = socket.socketpair(socket.AF_UNIX, socket.SOCK_DGRAM)
    with UEventConn(sock=left) as conn:
        assert conn.sock is left
    assert conn.sock is None
    assert left.fileno() == -1
    right.close()


def test_read_on_closed_connection_raises():
    with pytest.raises(OSError, match="not open"):
        UEventConn().read_msg()