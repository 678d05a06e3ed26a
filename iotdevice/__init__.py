"""Registers, values, state storage, device state and a genset controller for IoT devices."""

__version__ = "3.0.0"