"""Command that discovers connected Joy-Cons and lists them."""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Iterator, Optional, Sequence, TextIO

from .device import DeviceInfo, HidBackend, JoyCon
from .discovery import discover_all_joycons
from .shared import LJoycon, RJoycon

_HIDRAW_ROOT = Path("/sys/class/hidraw")


def _scan_hidraw(root: Path = _HIDRAW_ROOT) -> Iterator[tuple[Path, DeviceInfo]]:
    if not root.is_dir():
        return
    for entry in sorted(root.iterdir()):
        try:
            text = (entry / "device" / "uevent").read_text()
        except OSError:
            continue
        fields = dict(line.split("=", 1) for line in text.splitlines() if "=" in line)
        parts = fields.get("HID_ID", "").split(":")
        if len(parts) != 3:
            continue
        try:
            vendor_id, product_id = int(parts[1], 16), int(parts[2], 16)
        except ValueError:
            continue
        yield Path("/dev") / entry.name, DeviceInfo(
            vendor_id, product_id, fields.get("HID_UNIQ") or None
        )


class _HidrawDevice:
    def __init__(self, fd: int) -> None:
        self._fd = fd

    def read(self, size: int) -> bytes:
        return os.read(self._fd, size)

    def write(self, data: bytes) -> int:
        return os.write(self._fd, data)

    def close(self) -> None:
        os.close(self._fd)


class _HidrawBackend:
    """HID access through the hidraw device nodes."""

    def enumerate(self, vendor_id: int) -> list[DeviceInfo]:
        return [info for _, info in _scan_hidraw() if info.vendor_id == vendor_id]

    def open(
        self, vendor_id: int, product_id: int, serial: Optional[str]
    ) -> Optional[_HidrawDevice]:
        for path, info in _scan_hidraw():
            if (info.vendor_id, info.product_id) != (vendor_id, product_id):
                continue
            if serial is not None and info.serial_number != serial:
                continue
            return _HidrawDevice(os.open(path, os.O_RDWR))
        return None


def _kind(joycon: JoyCon) -> str:
    if isinstance(joycon, LJoycon):
        return "Left"
    if isinstance(joycon, RJoycon):
        return "Right"
    return "Unknown"


def run(backend: HidBackend, out: Optional[TextIO] = None) -> int:
    """Discover Joy-Cons through ``backend``, list them, and release them."""
    if out is None:
        out = sys.stdout
    joycons: dict[str, JoyCon] = {}
    unbound: list[str] = []

    print("Running", file=out)
    start = time.perf_counter()
    try:
        discover_all_joycons(backend, joycons, unbound)
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        print("Running After Code", file=out)
        print(f"discover_all_joycons took {elapsed_ms:g} ms", file=out)

        print("Discovered Joy-Cons:", file=out)
        for serial in sorted(joycons):
            print(f"  Serial: {serial}", file=out)
            print(f"    Type: {_kind(joycons[serial])}", file=out)

        print("Unbound Joy-Cons:", file=out)
        for serial in unbound:
            print(f"  {serial}", file=out)
    finally:
        for joycon in joycons.values():
            joycon.close()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point of the ``joycon`` command."""
    parser = argparse.ArgumentParser(
        prog="joycon", description="Discover connected Joy-Cons and list them."
    )
    parser.parse_args(argv)
    return run(_HidrawBackend())


if __name__ == "__main__":
    sys.exit(main())