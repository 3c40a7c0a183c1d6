"""GPIO, PWM, soft-tone and I2C access behind a small backend interface."""

from __future__ import annotations

import abc
import enum
import threading
from collections.abc import Iterable

HIGH = 1
LOW = 0


class DeviceError(RuntimeError):
    """Raised when a device or the hardware behind it cannot be used."""


class PinMode(enum.Enum):
    """Modes a GPIO pin can be put into."""

    INPUT = "input"
    OUTPUT = "output"
    PWM_OUTPUT = "pwm_output"


class GpioBackend(abc.ABC):
    """Hardware access used by the device drivers."""

    @abc.abstractmethod
    def setup(self) -> None:
        """Prepare the GPIO subsystem; raise DeviceError on failure."""

    @abc.abstractmethod
    def pin_mode(self, pin: int, mode: PinMode) -> None:
        """Set the mode of a pin."""

    @abc.abstractmethod
    def digital_write(self, pin: int, value: int) -> None:
        """Drive a pin HIGH or LOW."""

    @abc.abstractmethod
    def configure_pwm(self, range_: int, clock: int) -> None:
        """Set the PWM range and clock divider (mark-space mode)."""

    @abc.abstractmethod
    def pwm_write(self, pin: int, value: int) -> None:
        """Write a PWM duty value to a pin."""

    @abc.abstractmethod
    def soft_tone_create(self, pin: int) -> None:
        """Start software tone generation on a pin."""

    @abc.abstractmethod
    def soft_tone_write(self, pin: int, frequency: int) -> None:
        """Set the tone frequency of a pin; 0 silences it."""

    @abc.abstractmethod
    def i2c_open(self, device: str, address: int) -> int:
        """Open an I2C device and return a handle."""

    @abc.abstractmethod
    def i2c_write(self, handle: int, value: int) -> None:
        """Write one byte to an I2C device."""

    @abc.abstractmethod
    def i2c_read(self, handle: int) -> int:
        """Read one byte from an I2C device."""


class MemoryBackend(GpioBackend):
    """A backend that keeps all pin state in memory.

    ``i2c_values`` are returned by successive ``i2c_read`` calls; once they
    run out the last one is repeated (0 if none were given).
    ``fail_setup`` makes ``setup`` and ``i2c_open`` raise DeviceError.
    """

    def __init__(self, i2c_values: Iterable[int] | None = None, fail_setup: bool = False):
        self._lock = threading.Lock()
        self._i2c_values = list(i2c_values or ())
        self._i2c_last = 0
        self._next_handle = 3
        self._levels: dict[int, int] = {}
        self._pwm: dict[int, int] = {}
        self._tones: dict[int, int] = {}
        self.fail_setup = fail_setup
        self.setup_calls = 0
        self.modes: dict[int, PinMode] = {}
        self.pwm_config: tuple[int, int] | None = None
        self.tone_pins: set[int] = set()
        self.writes: list[tuple[int, int]] = []
        self.tone_history: list[tuple[int, int]] = []
        self.i2c_devices: dict[int, tuple[str, int]] = {}
        self.i2c_writes: list[tuple[int, int]] = []

    def setup(self) -> None:
        with self._lock:
            self.setup_calls += 1
            if self.fail_setup:
                raise DeviceError("GPIO setup failed")

    def pin_mode(self, pin: int, mode: PinMode) -> None:
        with self._lock:
            self.modes[pin] = PinMode(mode)

    def digital_write(self, pin: int, value: int) -> None:
        level = HIGH if value else LOW
        with self._lock:
            self._levels[pin] = level
            self.writes.append((pin, level))

    def configure_pwm(self, range_: int, clock: int) -> None:
        with self._lock:
            self.pwm_config = (range_, clock)

    def pwm_write(self, pin: int, value: int) -> None:
        with self._lock:
            self._pwm[pin] = value

    def soft_tone_create(self, pin: int) -> None:
        with self._lock:
            self.tone_pins.add(pin)

    def soft_tone_write(self, pin: int, frequency: int) -> None:
        with self._lock:
            self._tones[pin] = frequency
            self.tone_history.append((pin, frequency))

    def i2c_open(self, device: str, address: int) -> int:
        with self._lock:
            if self.fail_setup:
                raise DeviceError(f"cannot open I2C device {device} at 0x{address:02X}")
            handle = self._next_handle
            self._next_handle += 1
            self.i2c_devices[handle] = (device, address)
            return handle

    def _check_handle(self, handle: int) -> None:
        if handle not in self.i2c_devices:
            raise DeviceError(f"unknown I2C handle {handle}")

    def i2c_write(self, handle: int, value: int) -> None:
        with self._lock:
            self._check_handle(handle)
            self.i2c_writes.append((handle, value))

    def i2c_read(self, handle: int) -> int:
        with self._lock:
            self._check_handle(handle)
            if self._i2c_values:
                self._i2c_last = self._i2c_values.pop(0)
            return self._i2c_last

    def level(self, pin: int) -> int | None:
        """Last digital level written to a pin, or None."""
        with self._lock:
            return self._levels.get(pin)

    def pwm(self, pin: int) -> int | None:
        """Last PWM value written to a pin, or None."""
        with self._lock:
            return self._pwm.get(pin)

    def tone(self, pin: int) -> int | None:
        """Current tone frequency of a pin, or None."""
        with self._lock:
            return self._tones.get(pin)