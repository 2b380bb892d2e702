[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jimbot"
version = "0.1.0"
description = "Cycle-stepped instruction core of a handheld game console emulator: registers, decoders, operand fetcher, ALU and executor."
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "cpu", "sm83", "lr35902", "instruction decoder"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["jimbot"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
