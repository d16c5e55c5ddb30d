[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oaicm"
version = "0.11.0"
description = "Telemetry frames, MIL-STD-1553 bookkeeping, power-channel control and FRAM frame storage for an onboard control module"
requires-python = ">=3.10"
dependencies = []
keywords = ["mil-std-1553", "crc16", "telemetry", "frames", "power-management", "fram"]
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
    "Topic :: Software Development :: Embedded Systems",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["oaicm"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
