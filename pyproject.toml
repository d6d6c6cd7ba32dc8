[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "joycon"
version = "0.1.0"
description = "Discover Joy-Con controllers and read their buttons, sticks, motion sensors and lamps over HID"
requires-python = ">=3.10"
dependencies = []
keywords = ["joycon", "hid", "hidraw", "controller", "gamepad", "imu", "rumble"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
joycon = "joycon.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["joycon"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
