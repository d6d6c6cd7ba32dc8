"""Discover Joy-Con controllers over a pluggable HID backend and read their input, lamps and rumble."""

__version__ = "0.1.0"