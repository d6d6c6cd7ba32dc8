import threading
import time
from collections import deque

import pytest

from joycon.constants import JOYCON_L_PRODUCT_ID, JOYCON_R_PRODUCT_ID, JOYCON_VENDOR_ID
from joycon.device import (
    DEFAULT_RUMBLE_DATA,
    INPUT_REPORT_SIZE,
    RUMBLE_BUMP,
    RUMBLE_SIMPLE,
    JoyCon,
    JoyConError,
    to_int16le,
)


def calibration_block(accel_offset, accel_coeff, gyro_offset, gyro_coeff):
    values = (*accel_offset, *accel_coeff, *gyro_offset, *gyro_coeff)
    return b"".join(v.to_bytes(2, "little", signed=True) for v in values)


FACTORY = calibration_block((0, 0, 0), (0x4000,) * 3, (0, 0, 0), (0x343B,) * 3)


class FakeDevice:
    def __init__(self, spi=None, ack=True):
        self.spi = {0x6020: FACTORY, 0x6050: bytes(6)}
        self.spi.update(spi or {})
        self.ack = ack
        self.state = bytearray(INPUT_REPORT_SIZE)
        self.state[0] = 0x30
        self.writes = []
        self.responses = deque()
        self.closed = False
        self.fail_read = False

    def write(self, data):
        data = bytes(data)
        self.writes.append(data)
        if data[0] == 0x01 and data[10] == 0x10:
            argument = data[11:16]
            address = int.from_bytes(argument[:4], "little")
            size = argument[4]
            payload = self.spi.get(address, bytes(size)).ljust(size, b"\0")
            reply = bytearray(INPUT_REPORT_SIZE)
            reply[0] = 0x21
            reply[13] = 0x90 if self.ack else 0x10
            reply[14] = 0x10
            reply[15:20] = argument
            reply[20 : 20 + size] = payload[:size]
            self.responses.append(bytes(reply))
        return len(data)

    def read(self, size):
        if self.fail_read:
            raise OSError("gone")
        if self.responses:
            return self.responses.popleft()
        time.sleep(0.001)
        return bytes(self.state[:size])

    def close(self):
        self.closed = True


class FakeBackend:
    def __init__(self, device):
        self.device = device
        self.opened = []

    def enumerate(self, vendor_id):
        return []

    def open(self, vendor_id, product_id, serial):
        self.opened.append((vendor_id, product_id, serial))
        return self.device


def make(device, product_id=JOYCON_L_PRODUCT_ID, serial="TEST-SERIAL-0001"):
    return JoyCon(JOYCON_VENDOR_ID, product_id, FakeBackend(device), serial)


def wait_for_update(joycon):
    event = threading.Event()
    joycon.register_update_hook(lambda _jc: event.set())
    assert event.wait(2.0)


def put_int16(buffer, offset, value):
    buffer[offset : offset + 2] = value.to_bytes(2, "little", signed=True)


def spi_addresses(writes):
    return [int.from_bytes(w[11:15], "little") for w in writes if w[0] == 0x01 and w[10] == 0x10]


@pytest.mark.parametrize("value", [-32768, -1, 0, 1, 0x1234, 32767])
def test_to_int16le_round_trip(value):
    low, high = value.to_bytes(2, "little", signed=True)
    assert to_int16le(low, high) == value


def test_to_int16le_pinned():
    assert to_int16le(0xFF, 0xFF) == -1
    assert to_int16le(0x00, 0x80) == -32768


def test_invalid_vendor_rejected():
    backend = FakeBackend(FakeDevice())
    with pytest.raises(ValueError, match="vendor_id"):
        JoyCon(0x1234, JOYCON_L_PRODUCT_ID, backend)
    assert backend.opened == []


def test_invalid_product_rejected():
    backend = FakeBackend(FakeDevice())
    with pytest.raises(ValueError, match="product_id"):
        JoyCon(JOYCON_VENDOR_ID, 0x2008, backend)
    assert backend.opened == []


def test_open_failure():
    class NoDevice(FakeBackend):
        def open(self, vendor_id, product_id, serial):
            return None

    with pytest.raises(JoyConError, match="connect failed"):
        JoyCon(JOYCON_VENDOR_ID, JOYCON_R_PRODUCT_ID, NoDevice(None))


def test_empty_serial_opens_without_serial():
    device = FakeDevice()
    backend = FakeBackend(device)
    with JoyCon(JOYCON_VENDOR_ID, JOYCON_L_PRODUCT_ID, backend):
        pass
    assert backend.opened == [(JOYCON_VENDOR_ID, JOYCON_L_PRODUCT_ID, None)]


def test_factory_calibration_read_sequence():
    device = FakeDevice()
    with make(device):
        pass
    assert spi_addresses(device.writes) == [0x6050, 0x8026, 0x6020]


def test_user_calibration_used_when_present():
    device = FakeDevice(spi={0x8026: bytes((0xB2, 0xA1)), 0x8028: FACTORY})
    with make(device):
        pass
    assert spi_addresses(device.writes) == [0x6050, 0x8026, 0x8028]


def test_setup_sensor_commands_and_packet_numbers():
    device = FakeDevice()
    with make(device):
        pass
    assert device.writes[3][10:12] == bytes((0x40, 0x01))
    assert device.writes[4][10:12] == bytes((0x03, 0x30))
    assert [w[1] for w in device.writes] == list(range(5))
    assert all(w[2:10] == DEFAULT_RUMBLE_DATA for w in device.writes)


def test_colors_read_from_flash():
    device = FakeDevice(spi={0x6050: bytes((10, 20, 30, 40, 50, 60))})
    with make(device) as joycon:
        assert joycon.body_color == (10, 20, 30)
        assert joycon.button_color == (40, 50, 60)


def test_nack_raises_and_closes():
    device = FakeDevice(ack=False)
    with pytest.raises(JoyConError, match="NACK"):
        make(device)
    assert device.closed


def test_read_failure_during_setup():
    device = FakeDevice()
    device.fail_read = True
    with pytest.raises(JoyConError, match="read input report"):
        make(device)
    assert device.closed


def test_sides():
    with make(FakeDevice(), JOYCON_L_PRODUCT_ID) as left:
        assert left.is_left() and not left.is_right()
    with make(FakeDevice(), JOYCON_R_PRODUCT_ID) as right:
        assert right.is_right() and not right.is_left()


@pytest.mark.parametrize(
    "name, byte, bit",
    [("y", 3, 0), ("a", 3, 3), ("zr", 3, 7), ("home", 4, 4), ("capture", 4, 5), ("left_sr", 5, 4), ("zl", 5, 7)],
)
def test_buttons(name, byte, bit):
    device = FakeDevice()
    device.state[byte] = 1 << bit
    with make(device) as joycon:
        wait_for_update(joycon)
        assert joycon.button(name) == 1
        others = [n for n in ("y", "a", "zr", "home", "capture", "left_sr", "zl") if n != name]
        assert all(joycon.button(n) == 0 for n in others)


def test_unknown_button():
    with make(FakeDevice()) as joycon:
        with pytest.raises(ValueError):
            joycon.button("turbo")


def test_battery():
    level = 4
    device = FakeDevice()
    device.state[2] = (level << 5) | (1 << 4)
    with make(device) as joycon:
        wait_for_update(joycon)
        assert joycon.battery_level() == level
        assert joycon.battery_charging() == 1


@pytest.mark.parametrize("start, side", [(6, "left"), (9, "right")])
def test_sticks(start, side):
    horizontal, vertical = 0x123, 0x456
    device = FakeDevice()
    device.state[start] = horizontal & 0xFF
    device.state[start + 1] = (horizontal >> 8) | ((vertical & 0xF) << 4)
    device.state[start + 2] = vertical >> 4
    with make(device) as joycon:
        wait_for_update(joycon)
        assert getattr(joycon, f"stick_{side}_horizontal")() == horizontal
        assert getattr(joycon, f"stick_{side}_vertical")() == vertical


def test_accel_uses_flash_offsets():
    offsets = (10, 20, 30)
    raw = (110, 20, -70)
    device = FakeDevice(spi={0x6020: calibration_block(offsets, (0x4000,) * 3, (0, 0, 0), (0x343B,) * 3)})
    for k, value in enumerate(raw):
        put_int16(device.state, 13 + 2 * k, value)
    with make(device) as joycon:
        wait_for_update(joycon)
        reading = joycon.accel()
        assert (reading.x, reading.y, reading.z) == tuple(float(r - o) for r, o in zip(raw, offsets))


def test_accel_coefficient_scaling():
    device = FakeDevice()
    put_int16(device.state, 13, 100)
    with make(device) as joycon:
        joycon.set_accel_calibration((0, 0, 0), (0x2000, 0x4000, 0x4000))
        wait_for_update(joycon)
        assert joycon.accel().x == pytest.approx(200.0)


def test_gyro_third_sample():
    device = FakeDevice()
    put_int16(device.state, 19 + 24, -123)
    put_int16(device.state, 23 + 24, 77)
    with make(device) as joycon:
        wait_for_update(joycon)
        reading = joycon.gyro(2)
        assert reading.x == -123.0
        assert reading.z == 77.0
        assert joycon.gyro(0).x == 0.0


@pytest.mark.parametrize("index", [-1, 3])
def test_sample_index_out_of_range(index):
    with make(FakeDevice()) as joycon:
        with pytest.raises(IndexError):
            joycon.accel(index)
        with pytest.raises(IndexError):
            joycon.gyro(index)


def test_status_matches_individual_readings():
    device = FakeDevice()
    device.state[3] = 1 << 3
    device.state[4] = (1 << 3) | (1 << 0)
    device.state[5] = 1 << 6
    put_int16(device.state, 15, 42)
    with make(device) as joycon:
        wait_for_update(joycon)
        status = joycon.get_status()
        assert status.buttons_right.a == joycon.button("a") == 1
        assert status.buttons_left.minus == joycon.button("minus") == 1
        assert status.buttons_left.l == joycon.button("l") == 1
        assert status.stick_left.pressed == joycon.button("l_stick") == 1
        assert status.stick_right.pressed == 0
        assert status.accel == joycon.accel()
        assert status.gyro == joycon.gyro()
        assert status.battery.level == joycon.battery_level()


@pytest.mark.parametrize("player, pattern", [(1, 1), (2, 3), (4, 15), (5, 9), (8, 6)])
def test_player_lamp(player, pattern):
    device = FakeDevice()
    with make(device) as joycon:
        joycon.set_player_lamp(player)
        assert device.writes[-1][10:] == bytes((0x30, pattern))
        joycon.set_player_lamp_flashing(player)
        assert device.writes[-1][10:] == bytes((0x30, pattern << 4))


@pytest.mark.parametrize("player", [0, 9, -1])
def test_invalid_player(player):
    device = FakeDevice()
    with make(device) as joycon:
        count = len(device.writes)
        with pytest.raises(ValueError):
            joycon.set_player_lamp(player)
        with pytest.raises(ValueError):
            joycon.set_player_lamp_flashing(player)
        assert len(device.writes) == count


def test_player_lamp_on_masks_pattern():
    device = FakeDevice()
    with make(device) as joycon:
        joycon.set_player_lamp_on(0x1F)
        assert device.writes[-1][10:] == bytes((0x30, 0x0F))


def test_rumble_frames_and_state():
    device = FakeDevice()
    with make(device) as joycon:
        joycon.rumble_simple()
        frame = device.writes[-1]
        assert frame[0] == 0x10 and frame[2:] == RUMBLE_SIMPLE
        joycon.enable_vibration()
        assert device.writes[-1][2:10] == RUMBLE_SIMPLE
        assert device.writes[-1][10:] == bytes((0x48, 0x01))
        joycon.rumble_bump()
        assert device.writes[-1][2:] == RUMBLE_BUMP
        joycon.rumble_stop()
        assert device.writes[-1][2:] == DEFAULT_RUMBLE_DATA
        joycon.enable_vibration(False)
        assert device.writes[-1][2:] == DEFAULT_RUMBLE_DATA + bytes((0x48, 0x00))


def test_disconnect_command():
    device = FakeDevice()
    with make(device) as joycon:
        joycon.disconnect_device()
        assert device.writes[-1][0] == 0x01
        assert device.writes[-1][10:] == bytes((0x06, 0x00))


def test_packet_number_wraps():
    device = FakeDevice()
    with make(device) as joycon:
        for _ in range(20):
            joycon.set_player_lamp_on(1)
    assert [w[1] for w in device.writes] == [i % 16 for i in range(len(device.writes))]


def test_hook_receives_joycon():
    seen = []
    event = threading.Event()
    with make(FakeDevice()) as joycon:
        joycon.register_update_hook(lambda jc: (seen.append(jc), event.set()))
        assert event.wait(2.0)
        assert seen[0] is joycon


def test_close_stops_reader_and_closes_device():
    device = FakeDevice()
    joycon = make(device)
    joycon.close()
    assert device.closed
    assert not joycon._thread.is_alive()
    joycon.close()
    with pytest.raises(JoyConError):
        joycon.set_player_lamp(1)