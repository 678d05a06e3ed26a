[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iotdevice"
version = "3.0.0"
description = "Register, value and device state handling for IoT devices, with a generator set controller."
requires-python = ">=3.10"
dependencies = []
keywords = ["iot", "home automation", "genset", "registers", "telemetry", "state machine"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Home Automation",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["iotdevice"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
