"""Command line: list existing devices or monitor uevents as they arrive."""

from __future__ import annotations

import argparse
import logging
import signal
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from ueventkit.conn import Mode, UEventConn
from ueventkit.crawler import BASE_DEVPATH, existing_devices
from ueventkit.matcher import RuleDefinitions

logger = logging.getLogger(__name__)


def load_matcher(path: str | None) -> RuleDefinitions | None:
    """Load matching rules from a JSON file; no path means no matcher."""
    if not path:
        return None
    with open(path, "rb") as stream:
        data = stream.read()
    try:
        return RuleDefinitions.from_json(data)
    except ValueError as exc:
        raise ValueError(f"wrong rule syntax, err: {exc}") from exc


@contextmanager
def _interrupt_on_termination() -> Iterator[None]:
    """Turn SIGTERM and SIGQUIT into KeyboardInterrupt while active."""

    def handler(signum: int, frame: object) -> None:
        raise KeyboardInterrupt

    previous = {}
    try:
        for name in ("SIGTERM", "SIGQUIT"):
            signum = getattr(signal, name, None)
            if signum is not None:
                previous[signum] = signal.signal(signum, handler)
    except ValueError:
        pass  # not in the main thread
    try:
        yield
    finally:
        for signum, old in previous.items():
            signal.signal(signum, old)


def _info(matcher: RuleDefinitions | None, root: str) -> int:
    logger.info("Get existing devices...")
    try:
        devices = existing_devices(matcher, root)
    except ValueError as exc:
        logger.error("ERROR: %s", exc)
        return 1
    try:
        with _interrupt_on_termination():
            for device in devices:
                logger.info("Detect device at %s with env %s", device.kobj, device.env)
    except KeyboardInterrupt:
        logger.info("Exiting info mode...")
        return 0
    except OSError as exc:
        logger.error("ERROR: %s", exc)
    logger.info("Finished processing existing devices")
    return 0


def _monitor(matcher: RuleDefinitions | None) -> int:
    logger.info("Monitoring UEvent kernel message to user-space...")
    conn = UEventConn()
    try:
        conn.connect(Mode.UDEV_EVENT)
    except OSError:
        logger.error("Unable to connect to Netlink Kobject UEvent socket")
        return 1
    with conn:
        try:
            with _interrupt_on_termination():
                for event in conn.monitor(matcher):
                    logger.info("Handle %r", event)
        except KeyboardInterrupt:
            logger.info("Exiting monitor mode...")
            return 0
        except (OSError, ValueError) as exc:
            logger.error("ERROR: %s", exc)
            return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command and return its exit status."""
    parser = argparse.ArgumentParser(prog="ueventkit")
    parser.add_argument(
        "-file",
        "--file",
        default="",
        help="optional input file path with matcher rules (default: no matcher)",
    )
    parser.add_argument("-monitor", "--monitor", action="store_true", help="enable monitor mode")
    parser.add_argument("-info", "--info", action="store_true", help="enable crawler mode")
    parser.add_argument(
        "--sysfs-root",
        default=BASE_DEVPATH,
        help=f"directory crawled in info mode (default: {BASE_DEVPATH})",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        matcher = load_matcher(args.file)
    except (OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    if args.monitor and args.info:
        logger.error("Unable to enable both mode : monitor & info")
        return 1
    if args.monitor:
        return _monitor(matcher)
    if args.info:
        return _info(matcher, args.sysfs_root)
    return 0