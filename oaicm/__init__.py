"""Telemetry frames, MIL-STD-1553 bookkeeping, power-channel control and FRAM frame storage."""

__version__ = "0.11.0"