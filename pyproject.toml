[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tmcstep"
version = "0.1.0"
description = "Control TMC2209 stepper motor drivers over their single-wire UART interface"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["tmc2209", "stepper", "motor", "driver", "uart", "stealthchop", "coolstep"]
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
    "Topic :: System :: Hardware :: Hardware Drivers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
tmcstep = "tmcstep.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["tmcstep"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
