# joycon

This is a small library for talking to Joy-Con controllers over HID. It can:

- find every connected left and right Joy-Con and open each one on its own thread,
- read the battery, buttons, analog sticks, accelerometer and gyroscope, using the calibration stored in the controller,
- set the player lamps, send the built-in rumble patterns, and ask a controller to disconnect.

The library has no runtime dependencies outside the standard library.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## HID access

The library reaches devices through a backend object that you pass in. The
shape of that object is described by the protocols in `joycon.device`:

- `HidBackend.enumerate(vendor_id)` returns an iterable of `DeviceInfo(vendor_id, product_id, serial_number)`.
- `HidBackend.open(vendor_id, product_id, serial)` returns a `HidDevice`. On failure it returns `None` or raises `OSError`.
- `HidDevice` has `read(size)`, `write(data)` and `close()`. `read` and `write` raise `OSError` on failure.

Any HID library can be wrapped this way. So can an in-memory fake in tests.
The `joycon` command uses its own backend, described under
[Command line](#command-line).

## Finding controllers

```python
from joycon.discovery import discover_all_joycons

joycons = {}
unbound = []
discover_all_joycons(backend, joycons, unbound, pairing=False)

for identifier, jc in joycons.items():
    print(identifier, "left" if jc.is_left() else "right")
```

`discover_all_joycons` works as follows:

- It enumerates the devices of the Joy-Con vendor id and skips any identifier already in `joycons`.
- It opens each new left (`LJoycon`) or right (`RJoycon`) controller on a separate thread. Devices with any other product id are ignored.
- It updates both containers in place and also returns the mapping. Each new identifier is appended to `unbound` if it is not already there.
- A device without a serial number gets an identifier made from the current time in nanoseconds. `get_identifier(serial)` returns this value.
- It prints a line to standard output for each controller it finds. When `pairing` is false, it also prints a summary line.
- A controller that fails to initialise is reported on standard error and left out. Discovery continues with the other devices.

`set_player_lamps_once()` is called for each new controller. It does nothing
at present.

## Reading a controller

```python
from joycon.constants import JOYCON_VENDOR_ID, JOYCON_R_PRODUCT_ID
from joycon.shared import RJoycon

with RJoycon(JOYCON_VENDOR_ID, JOYCON_R_PRODUCT_ID, backend) as jc:
    status = jc.get_status()
    print(status.battery.level, status.buttons.a, status.stick.horizontal)
    print(status.accel, status.gyro)
```

### Opening and closing

When a controller is opened, the library does the following:

1. Checks the vendor and product ids. If either is wrong, it raises `ValueError`.
2. Reads the body and button colours and the IMU calibration from the controller's SPI flash. The colours are stored in `body_color` and `button_color`. The user calibration is used if present; otherwise the factory calibration is used.
3. Enables the IMU and switches to standard input reports.
4. Starts a daemon thread that keeps the latest report.

`close()`, or leaving the `with` block, stops that thread and releases the
device.

### Status

- `LJoycon.get_status()` and `RJoycon.get_status()` return a `SideStatus` for that side. It contains `battery`, `buttons`, `stick`, `accel` and `gyro`.
- `JoyCon.get_status()` returns a full `joycon.status.Status`. It contains `battery`, `buttons_right`, `buttons_left`, `stick_left`, `stick_right`, `accel` and `gyro`.
- `Status.as_dict()` returns the same data as nested dictionaries.

All status records are frozen dataclasses.

### Reading single values

`JoyCon` also reads individual values from the latest report:

- `button(name)` reads one button. The name is a key of `joycon.device.BUTTONS`, such as `"zr"`, `"home"`, `"l_stick"` or `"charging_grip"`. An unknown name raises `ValueError`.
- `battery_level()` and `battery_charging()` read the battery.
- `stick_left_horizontal()`, `stick_left_vertical()`, `stick_right_horizontal()` and `stick_right_vertical()` read the sticks. The values are raw 12-bit numbers.
- `accel(sample_idx)` and `gyro(sample_idx)` return a calibrated `Vector3` for one of the three IMU samples in a report. The index must be 0, 1 or 2; any other value raises `IndexError`.

### Update hooks

You can register a function to be called on every new input report. It runs
on the reader thread:

```python
jc.register_update_hook(lambda jc: print(jc.button("a")))
```

If reading fails, the reader thread logs a warning and stops.

## Lamps and rumble

```python
jc.set_player_lamp(2)           # players 1-8
jc.set_player_lamp_flashing(3)
jc.set_player_lamp_on(0b0101)
jc.enable_vibration(True)
jc.rumble_simple()
jc.rumble_bump()
jc.rumble_stop()
jc.disconnect_device()
```

- A player number outside 1–8 raises `ValueError`.
- Failures to open, read or write the device raise `joycon.device.JoyConError`.

## Command line

```
joycon
```

The command takes no options other than `--help`. It does the following:

1. Finds the connected controllers through the Linux hidraw device nodes under `/sys/class/hidraw`. It needs read and write access to the matching `/dev/hidraw*` files.
2. Reports how long discovery took.
3. Lists each controller with its type (Left or Right), followed by the identifiers not yet bound.
4. Closes the controllers again.

To run the same listing against your own backend, call
`joycon.cli.run(backend, out)`, where `out` is a text stream.

## What it does not do

- It does not pair or connect controllers over Bluetooth. Controllers must already be present as HID devices.
- The command works only where hidraw nodes exist. On other systems it finds nothing.
- `CombinedStatus` and `JoyconData` are plain records. Nothing in the package joins a left and a right controller into one.
- Rumble is limited to the fixed patterns above. The package does not encode arbitrary frequencies or amplitudes.
- The `simple_mode` argument is stored on the controller. Nothing in the package reads it.