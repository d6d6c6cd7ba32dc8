"""Left and right Joy-Con halves and the status records they produce."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from .device import HidBackend, JoyCon
from .status import Battery, ButtonSide, Stick, Vector3


def _serial_or_timestamp(serial: str) -> str:
    return serial if serial else str(time.time_ns())


@dataclass(frozen=True)
class SideStatus:
    """The part of a status report that belongs to one controller half."""

    battery: Battery = field(default_factory=Battery)
    buttons: ButtonSide = field(default_factory=ButtonSide)
    stick: Stick = field(default_factory=Stick)
    accel: Vector3 = field(default_factory=Vector3)
    gyro: Vector3 = field(default_factory=Vector3)


@dataclass(frozen=True)
class JoyconData:
    """Status of one half together with the identifier of the controller."""

    battery: Battery = field(default_factory=Battery)
    buttons: ButtonSide = field(default_factory=ButtonSide)
    stick: Stick = field(default_factory=Stick)
    gyro: Vector3 = field(default_factory=Vector3)
    accel: Vector3 = field(default_factory=Vector3)
    id: Optional[str] = None


@dataclass(frozen=True)
class CombinedStatus:
    """Status of a left and a right half used as one controller."""

    left: JoyconData = field(default_factory=JoyconData)
    right: JoyconData = field(default_factory=JoyconData)
    l_id: Optional[str] = None
    r_id: Optional[str] = None


class LJoycon(JoyCon):
    """A left Joy-Con; without a serial it is named after the current time."""

    def __init__(
        self,
        vendor_id: int,
        product_id: int,
        backend: HidBackend,
        serial: str = "",
        simple_mode: bool = False,
    ) -> None:
        serial = _serial_or_timestamp(serial)
        super().__init__(vendor_id, product_id, backend, serial, simple_mode)
        self.calibrated = False
        self.serial = serial

    def get_status(self) -> SideStatus:  # type: ignore[override]
        """Decode the latest input report, keeping only the left half."""
        base = super().get_status()
        return SideStatus(
            battery=base.battery,
            buttons=base.buttons_left,
            stick=base.stick_left,
            accel=base.accel,
            gyro=base.gyro,
        )


class RJoycon(JoyCon):
    """A right Joy-Con; without a serial it is named after the current time."""

    def __init__(
        self,
        vendor_id: int,
        product_id: int,
        backend: HidBackend,
        serial: str = "",
        simple_mode: bool = False,
    ) -> None:
        serial = _serial_or_timestamp(serial)
        super().__init__(vendor_id, product_id, backend, serial, simple_mode)
        self.calibrated = False
        self.serial = serial

    def get_status(self) -> SideStatus:  # type: ignore[override]
        """Decode the latest input report, keeping only the right half."""
        base = super().get_status()
        return SideStatus(
            battery=base.battery,
            buttons=base.buttons_right,
            stick=base.stick_right,
            accel=base.accel,
            gyro=base.gyro,
        )