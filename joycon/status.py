"""Immutable snapshots of a Joy-Con's decoded input state."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class Battery:
    """Charging flag and level (0-4 in steps of two) of the battery."""

    charging: int = 0
    level: int = 0


@dataclass(frozen=True)
class ButtonSide:
    """Pressed state of the buttons of one controller half."""

    y: int = 0
    x: int = 0
    b: int = 0
    a: int = 0
    sr: int = 0
    sl: int = 0
    r: int = 0
    zr: int = 0
    plus: int = 0
    home: int = 0
    down: int = 0
    up: int = 0
    right: int = 0
    left: int = 0
    l: int = 0  # noqa: E741
    zl: int = 0
    minus: int = 0
    capture: int = 0


@dataclass(frozen=True)
class Stick:
    """Raw 12-bit position of an analog stick and whether it is pressed."""

    horizontal: int = 0
    vertical: int = 0
    pressed: int = 0


@dataclass(frozen=True)
class Vector3:
    """A calibrated three-axis sensor reading."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class Status:
    """Everything a single input report tells about a Joy-Con."""

    battery: Battery = field(default_factory=Battery)
    buttons_right: ButtonSide = field(default_factory=ButtonSide)
    buttons_left: ButtonSide = field(default_factory=ButtonSide)
    stick_left: Stick = field(default_factory=Stick)
    stick_right: Stick = field(default_factory=Stick)
    accel: Vector3 = field(default_factory=Vector3)
    gyro: Vector3 = field(default_factory=Vector3)

    def as_dict(self) -> dict[str, Any]:
        """Return the status as nested plain dictionaries."""
        return {
            "battery": asdict(self.battery),
            "buttons": {
                "right": asdict(self.buttons_right),
                "left": asdict(self.buttons_left),
            },
            "analog_sticks": {
                "left": asdict(self.stick_left),
                "right": asdict(self.stick_right),
            },
            "accel": asdict(self.accel),
            "gyro": asdict(self.gyro),
        }