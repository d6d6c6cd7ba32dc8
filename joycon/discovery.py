"""Finding connected Joy-Cons and opening them in parallel."""

from __future__ import annotations

import sys
import threading
import time
from typing import Optional

from .constants import JOYCON_L_PRODUCT_ID, JOYCON_R_PRODUCT_ID, JOYCON_VENDOR_ID
from .device import HidBackend, JoyCon
from .shared import LJoycon, RJoycon

_KINDS = {
    JOYCON_L_PRODUCT_ID: ("L", LJoycon),
    JOYCON_R_PRODUCT_ID: ("R", RJoycon),
}


def get_identifier(serial: Optional[str]) -> str:
    """Return the serial, or the current time when the device reports none."""
    if serial:
        return serial
    return str(time.time_ns())


def set_player_lamps_once() -> None:
    """Hook run once for each newly discovered controller; does nothing."""


def discover_all_joycons(
    backend: HidBackend,
    joycons: Optional[dict[str, JoyCon]] = None,
    unbound: Optional[list[str]] = None,
    pairing: bool = False,
) -> dict[str, JoyCon]:
    """Open every connected Joy-Con not yet in ``joycons`` and add it there.

    New identifiers are appended to ``unbound``. Both containers are updated
    in place; the mapping is also returned.
    """
    if joycons is None:
        joycons = {}
    if unbound is None:
        unbound = []

    known = set(joycons)
    lock = threading.Lock()
    discovered = 0

    def initialise(vendor_id: int, product_id: int, identifier: str) -> None:
        nonlocal discovered
        kind = _KINDS.get(product_id)
        if kind is None:
            return
        label, factory = kind
        try:
            joycon = factory(vendor_id, product_id, backend, identifier)
        except Exception as exc:
            with lock:
                print(
                    f"Error initializing Joy-Con (serial: {identifier}): {exc}",
                    file=sys.stderr,
                )
            return
        try:
            set_player_lamps_once()
        except Exception as exc:
            print(
                f"Warning: Issue with Joy-Con (serial: {identifier}): {exc}",
                file=sys.stderr,
            )
        with lock:
            joycons[identifier] = joycon
            if identifier not in unbound:
                unbound.append(identifier)
            print(f"Discovered {label} Joy-Con with ID: {identifier}")
            discovered += 1

    threads = []
    for info in backend.enumerate(JOYCON_VENDOR_ID):
        identifier = get_identifier(info.serial_number)
        if identifier in known:
            continue
        thread = threading.Thread(
            target=initialise,
            args=(info.vendor_id, info.product_id, identifier),
            daemon=True,
        )
        thread.start()
        threads.append(thread)

    for thread in threads:
        thread.join()

    if not pairing:
        print(f"Discovered {discovered} devices for vendor {JOYCON_VENDOR_ID:x}")
    return joycons