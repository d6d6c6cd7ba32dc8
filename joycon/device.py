"""Joy-Con HID protocol: framing, SPI reads, calibration and input decoding."""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, Sequence

from .constants import (
    JOYCON_L_PRODUCT_ID,
    JOYCON_PRODUCT_IDS,
    JOYCON_R_PRODUCT_ID,
    JOYCON_VENDOR_ID,
)
from .status import Battery, ButtonSide, Stick, Status, Vector3

_log = logging.getLogger(__name__)

INPUT_REPORT_SIZE = 49
INPUT_REPORT_PERIOD = 0.015
DEFAULT_RUMBLE_DATA = bytes((0x00, 0x01, 0x40, 0x40, 0x00, 0x01, 0x40, 0x40))
RUMBLE_SIMPLE = bytes((0x98, 0x2E, 0xC6, 0x48, 0x98, 0x1E, 0xC6, 0x47))
RUMBLE_BUMP = bytes((0x98, 0x1E, 0xC1, 0x51, 0x98, 0x1E, 0xC1, 0x12))

PLAYER_LAMP_PATTERNS = {1: 1, 2: 3, 3: 7, 4: 15, 5: 9, 6: 10, 7: 11, 8: 6}

# name -> (byte offset, bit offset) in a standard input report
BUTTONS = {
    "y": (3, 0),
    "x": (3, 1),
    "b": (3, 2),
    "a": (3, 3),
    "right_sr": (3, 4),
    "right_sl": (3, 5),
    "r": (3, 6),
    "zr": (3, 7),
    "minus": (4, 0),
    "plus": (4, 1),
    "r_stick": (4, 2),
    "l_stick": (4, 3),
    "home": (4, 4),
    "capture": (4, 5),
    "charging_grip": (4, 7),
    "down": (5, 0),
    "up": (5, 1),
    "right": (5, 2),
    "left": (5, 3),
    "left_sr": (5, 4),
    "left_sl": (5, 5),
    "l": (5, 6),
    "zl": (5, 7),
}

_ACCEL_REFERENCE = 0x4000
_GYRO_REFERENCE = 0x343B
_SPI_MAX_READ = 0x1D
_USER_CALIBRATION_MAGIC = bytes((0xB2, 0xA1))
_ACCEL_BASE = 13
_GYRO_BASE = 19
_SAMPLE_STRIDE = 12
_SAMPLES = 3

_REPORT_OUTPUT = 0x01
_REPORT_RUMBLE = 0x10
_REPORT_SUBCMD_REPLY = 0x21
_REPORT_STANDARD = 0x30


class JoyConError(RuntimeError):
    """Communication with a Joy-Con failed."""


@dataclass(frozen=True)
class DeviceInfo:
    """One HID device as reported by enumeration."""

    vendor_id: int
    product_id: int
    serial_number: Optional[str] = None


class HidDevice(Protocol):
    """An open HID device."""

    def read(self, size: int) -> bytes:
        """Block until an input report arrives and return up to ``size`` bytes; raise OSError on failure."""

    def write(self, data: bytes) -> int:
        """Send an output report and return the bytes written; raise OSError on failure."""

    def close(self) -> None:
        """Release the device."""


class HidBackend(Protocol):
    """Access to the system's HID devices."""

    def enumerate(self, vendor_id: int) -> Iterable[DeviceInfo]:
        """List the connected devices of a vendor."""

    def open(self, vendor_id: int, product_id: int, serial: Optional[str]) -> Optional[HidDevice]:
        """Open a device, or return None (or raise OSError) when that fails."""


def to_int16le(low_byte: int, high_byte: int) -> int:
    """Combine two little-endian bytes into a signed 16-bit integer."""
    value = (high_byte << 8) | low_byte
    return value if value < 0x8000 else value - 0x10000


def _coefficient(reference: int, value: int) -> float:
    if value == reference:
        return 1.0
    if value == 0:
        return math.inf
    return reference / value


def _bits(report: bytes, offset_byte: int, offset_bit: int, nbit: int) -> int:
    return (report[offset_byte] >> offset_bit) & ((1 << nbit) - 1)


def _lamp_pattern(player_number: int) -> int:
    try:
        return PLAYER_LAMP_PATTERNS[player_number]
    except KeyError:
        raise ValueError("Invalid player number") from None


class JoyCon:
    """A connected Joy-Con whose input reports are read in a background thread."""

    def __init__(
        self,
        vendor_id: int,
        product_id: int,
        backend: HidBackend,
        serial: str = "",
        simple_mode: bool = False,
    ) -> None:
        if vendor_id != JOYCON_VENDOR_ID:
            raise ValueError("vendor_id is invalid")
        if product_id not in JOYCON_PRODUCT_IDS:
            raise ValueError("product_id is invalid")

        self.vendor_id = vendor_id
        self.product_id = product_id
        self.serial = serial
        self.simple_mode = simple_mode
        self.body_color: tuple[int, int, int] = (0, 0, 0)
        self.button_color: tuple[int, int, int] = (0, 0, 0)

        self._hooks: list[Callable[[JoyCon], None]] = []
        self._report = bytes(INPUT_REPORT_SIZE)
        self._report_lock = threading.Lock()
        self._packet_number = 0
        self._rumble_data = DEFAULT_RUMBLE_DATA
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.set_accel_calibration((0, 0, 0), (1, 1, 1))
        self.set_gyro_calibration((0, 0, 0), (1, 1, 1))

        self._device: Optional[HidDevice] = self._open(backend, vendor_id, product_id, serial)
        try:
            self._read_joycon_data()
            self._setup_sensors()
        except BaseException:
            self._device.close()
            self._device = None
            raise

        self._thread = threading.Thread(
            target=self._update_input_report, name=f"joycon-{serial or product_id:}", daemon=True
        )
        self._thread.start()

    # -- lifecycle ---------------------------------------------------------

    @staticmethod
    def _open(backend: HidBackend, vendor_id: int, product_id: int, serial: str) -> HidDevice:
        try:
            device = backend.open(vendor_id, product_id, serial or None)
        except OSError as exc:
            raise JoyConError("joycon connect failed") from exc
        if device is None:
            raise JoyConError("joycon connect failed")
        return device

    def close(self) -> None:
        """Stop the reader thread and release the device."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join()
        if self._device is not None:
            self._device.close()
            self._device = None

    def __enter__(self) -> JoyCon:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # -- low-level I/O -----------------------------------------------------

    def _require_device(self) -> HidDevice:
        if self._device is None:
            raise JoyConError("device is closed")
        return self._device

    def _read_input_report(self) -> bytes:
        try:
            data = self._require_device().read(INPUT_REPORT_SIZE)
        except OSError as exc:
            raise JoyConError("Failed to read input report") from exc
        return bytes(data[:INPUT_REPORT_SIZE]).ljust(INPUT_REPORT_SIZE, b"\0")

    def _write_output_report(self, command: bytes) -> None:
        try:
            written = self._require_device().write(command)
        except OSError as exc:
            raise JoyConError("Failed to write output report") from exc
        if written is not None and written < 0:
            raise JoyConError("Failed to write output report")
        self._packet_number = (self._packet_number + 1) & 0xF

    def _send_subcommand(self, subcommand: int, argument: bytes = b"") -> None:
        command = bytes((_REPORT_OUTPUT, self._packet_number)) + self._rumble_data
        self._write_output_report(command + bytes((subcommand,)) + argument)

    def _send_subcmd_get_response(self, subcommand: int, argument: bytes) -> tuple[bool, bytes]:
        self._send_subcommand(subcommand, argument)
        report = self._read_input_report()
        while report[0] != _REPORT_SUBCMD_REPLY:
            report = self._read_input_report()
        if report[1] == subcommand:
            raise JoyConError("unexpected reply to subcommand")
        return bool(report[13] & 0x80), report[13:]

    def _spi_flash_read(self, address: int, size: int) -> bytes:
        if size > _SPI_MAX_READ:
            raise ValueError("size too large for SPI read")
        argument = address.to_bytes(4, "little") + bytes((size,))
        ack, reply = self._send_subcmd_get_response(0x10, argument)
        if not ack:
            raise JoyConError("After SPI read: got NACK")
        if reply[0] != 0x90 or reply[1] != 0x10:
            raise JoyConError("Unexpected ACK in SPI read")
        if reply[2:7] != argument:
            raise JoyConError("SPI argument mismatch")
        return reply[7 : 7 + size]

    def _read_joycon_data(self) -> None:
        colors = self._spi_flash_read(0x6050, 6)
        if self._spi_flash_read(0x8026, 2) == _USER_CALIBRATION_MAGIC:
            calibration = self._spi_flash_read(0x8028, 24)
        else:
            calibration = self._spi_flash_read(0x6020, 24)

        self.body_color = (colors[0], colors[1], colors[2])
        self.button_color = (colors[3], colors[4], colors[5])

        words = [to_int16le(low, high) for low, high in zip(calibration[0::2], calibration[1::2])]
        self.set_accel_calibration(words[0:3], words[3:6])
        self.set_gyro_calibration(words[6:9], words[9:12])

    def _setup_sensors(self) -> None:
        self._send_subcommand(0x40, b"\x01")
        time.sleep(0.02)
        self._send_subcommand(0x03, bytes((_REPORT_STANDARD,)))

    def _update_input_report(self) -> None:
        while not self._stop.is_set():
            try:
                report = self._read_input_report()
                while report[0] != _REPORT_STANDARD:
                    if self._stop.is_set():
                        return
                    report = self._read_input_report()
            except JoyConError as exc:
                if not self._stop.is_set():
                    _log.warning("input report reader stopped: %s", exc)
                return
            with self._report_lock:
                self._report = report
            for callback in list(self._hooks):
                callback(self)

    def _snapshot(self) -> bytes:
        with self._report_lock:
            return self._report

    # -- calibration and hooks ---------------------------------------------

    def set_gyro_calibration(self, offset_xyz: Sequence[int], coeff_xyz: Sequence[int]) -> None:
        """Set gyroscope offsets and raw coefficients."""
        self._gyro_offset = tuple(offset_xyz)
        self._gyro_coeff = tuple(_coefficient(_GYRO_REFERENCE, c) for c in coeff_xyz)

    def set_accel_calibration(self, offset_xyz: Sequence[int], coeff_xyz: Sequence[int]) -> None:
        """Set accelerometer offsets and raw coefficients."""
        self._accel_offset = tuple(offset_xyz)
        self._accel_coeff = tuple(_coefficient(_ACCEL_REFERENCE, c) for c in coeff_xyz)

    def register_update_hook(self, callback: Callable[[JoyCon], None]) -> None:
        """Call ``callback(joycon)`` after every new input report."""
        self._hooks.append(callback)

    def is_left(self) -> bool:
        return self.product_id == JOYCON_L_PRODUCT_ID

    def is_right(self) -> bool:
        return self.product_id == JOYCON_R_PRODUCT_ID

    # -- decoding ----------------------------------------------------------

    @staticmethod
    def _button(report: bytes, name: str) -> int:
        try:
            offset_byte, offset_bit = BUTTONS[name]
        except KeyError:
            raise ValueError(f"unknown button: {name!r}") from None
        return _bits(report, offset_byte, offset_bit, 1)

    @staticmethod
    def _stick(report: bytes, start: int) -> tuple[int, int]:
        horizontal = _bits(report, start, 0, 8) | (_bits(report, start + 1, 0, 4) << 8)
        vertical = _bits(report, start + 1, 4, 4) | (_bits(report, start + 2, 0, 8) << 4)
        return horizontal, vertical

    @staticmethod
    def _sensor(
        report: bytes, base: int, sample_idx: int, offset: Sequence[int], coeff: Sequence[float]
    ) -> Vector3:
        if not 0 <= sample_idx < _SAMPLES:
            raise IndexError("sample_idx")
        start = base + sample_idx * _SAMPLE_STRIDE
        chunk = report[start : start + 6]
        raw = [to_int16le(low, high) for low, high in zip(chunk[0::2], chunk[1::2])]
        return Vector3(*((value - o) * c for value, o, c in zip(raw, offset, coeff)))

    def button(self, name: str) -> int:
        """Return 1 if the named button (a key of ``BUTTONS``) is pressed, else 0."""
        return self._button(self._snapshot(), name)

    def battery_charging(self) -> int:
        return _bits(self._snapshot(), 2, 4, 1)

    def battery_level(self) -> int:
        return _bits(self._snapshot(), 2, 5, 3)

    def stick_left_horizontal(self) -> int:
        return self._stick(self._snapshot(), 6)[0]

    def stick_left_vertical(self) -> int:
        return self._stick(self._snapshot(), 6)[1]

    def stick_right_horizontal(self) -> int:
        return self._stick(self._snapshot(), 9)[0]

    def stick_right_vertical(self) -> int:
        return self._stick(self._snapshot(), 9)[1]

    def accel(self, sample_idx: int = 0) -> Vector3:
        """Calibrated accelerometer reading of one of the three samples."""
        return self._sensor(
            self._snapshot(), _ACCEL_BASE, sample_idx, self._accel_offset, self._accel_coeff
        )

    def gyro(self, sample_idx: int = 0) -> Vector3:
        """Calibrated gyroscope reading of one of the three samples."""
        return self._sensor(
            self._snapshot(), _GYRO_BASE, sample_idx, self._gyro_offset, self._gyro_coeff
        )

    def get_status(self) -> Status:
        """Decode the latest input report as a whole."""
        report = self._snapshot()

        def pressed(name: str) -> int:
            return self._button(report, name)

        right = ButtonSide(
            y=pressed("y"),
            x=pressed("x"),
            b=pressed("b"),
            a=pressed("a"),
            sr=pressed("right_sr"),
            sl=pressed("right_sl"),
            r=pressed("r"),
            zr=pressed("zr"),
            plus=pressed("plus"),
            home=pressed("home"),
        )
        left = ButtonSide(
            down=pressed("down"),
            up=pressed("up"),
            right=pressed("right"),
            left=pressed("left"),
            sr=pressed("left_sr"),
            sl=pressed("left_sl"),
            l=pressed("l"),
            zl=pressed("zl"),
            minus=pressed("minus"),
            capture=pressed("capture"),
        )
        return Status(
            battery=Battery(charging=_bits(report, 2, 4, 1), level=_bits(report, 2, 5, 3)),
            buttons_right=right,
            buttons_left=left,
            stick_left=Stick(*self._stick(report, 6), pressed=pressed("l_stick")),
            stick_right=Stick(*self._stick(report, 9), pressed=pressed("r_stick")),
            accel=self._sensor(report, _ACCEL_BASE, 0, self._accel_offset, self._accel_coeff),
            gyro=self._sensor(report, _GYRO_BASE, 0, self._gyro_offset, self._gyro_coeff),
        )

    # -- lamps and rumble --------------------------------------------------

    def set_player_lamp_on(self, on_pattern: int) -> None:
        """Light the player lamps given by the low four bits of ``on_pattern``."""
        self._send_subcommand(0x30, bytes((on_pattern & 0xF,)))

    def set_player_lamp_flashing(self, player_number: int) -> None:
        """Flash the lamp pattern of a player from 1 to 8."""
        pattern = _lamp_pattern(player_number)
        self._send_subcommand(0x30, bytes(((pattern & 0xF) << 4,)))

    def set_player_lamp(self, player_number: int) -> None:
        """Light the lamp pattern of a player from 1 to 8."""
        pattern = _lamp_pattern(player_number)
        self._send_subcommand(0x30, bytes((pattern & 0xF,)))

    def _send_rumble(self, data: bytes) -> None:
        self._rumble_data = bytes(data)
        self._write_output_report(bytes((_REPORT_RUMBLE, self._packet_number)) + self._rumble_data)

    def enable_vibration(self, enable: bool = True) -> None:
        self._send_subcommand(0x48, b"\x01" if enable else b"\x00")

    def rumble_simple(self) -> None:
        self._send_rumble(RUMBLE_SIMPLE)

    def rumble_bump(self) -> None:
        self._send_rumble(RUMBLE_BUMP)

    def rumble_stop(self) -> None:
        self._send_rumble(DEFAULT_RUMBLE_DATA)

    def disconnect_device(self) -> None:
        """Ask the controller to disconnect."""
        self._send_subcommand(0x06, b"\x00")