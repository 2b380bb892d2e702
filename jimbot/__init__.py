"""Cycle-stepped instruction core of a handheld game console emulator: registers, decoders, fetcher, ALU and executor."""

__version__ = "0.1.0"