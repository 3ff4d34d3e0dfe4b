[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "canring"
version = "0.1.0"
description = "Priority ring buffers, prioritised CAN frame queuing, bxCAN configuration helpers and periodic scheduling"
requires-python = ">=3.10"
dependencies = []
keywords = ["can", "canbus", "bxcan", "ring-buffer", "priority-queue", "j1939", "nmea2000", "scheduler"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["canring"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
