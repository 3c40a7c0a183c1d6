[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iotctl"
version = "0.1.0"
description = "Command server and client for an LED, a one-digit display, a buzzer and a light sensor, with an in-memory GPIO backend"
requires-python = ">=3.10"
dependencies = []
keywords = ["iot", "gpio", "led", "buzzer", "light-sensor", "seven-segment", "home-automation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
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

[project.scripts]
iot-server = "iotctl.server:main"
iot-client = "iotctl.client:main"

[tool.hatch.build.targets.wheel]
packages = ["iotctl"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
