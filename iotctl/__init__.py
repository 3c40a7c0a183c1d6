"""Drivers, command processing, a TCP/HTTP server and a client for an LED, a digit display, a buzzer and a light sensor."""

__version__ = "0.1.0"
__all__ = ["__version__"]