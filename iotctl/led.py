"""PWM-driven LED with three brightness levels."""

from __future__ import annotations

import logging
import threading

from .gpio import GpioBackend, PinMode

log = logging.getLogger(__name__)

LED_PIN = 18
PWM_RANGE = 1024
PWM_CLOCK = 375
BRIGHTNESS_LEVELS = {0: 102, 1: 512, 2: 1024}


class Led:
    """An LED on a hardware PWM pin; initialises itself on first use."""

    def __init__(self, backend: GpioBackend, pin: int = LED_PIN):
        self._backend = backend
        self.pin = pin
        self._lock = threading.RLock()
        self._initialized = False
        self._brightness = -1

    @property
    def initialized(self) -> bool:
        with self._lock:
            return self._initialized

    def init(self) -> None:
        """Set up the PWM pin; does nothing if already done."""
        with self._lock:
            if self._initialized:
                return
            self._backend.setup()
            self._backend.pin_mode(self.pin, PinMode.PWM_OUTPUT)
            self._backend.configure_pwm(PWM_RANGE, PWM_CLOCK)
            self._backend.pwm_write(self.pin, 0)
            self._initialized = True
        log.info("LED initialised (GPIO %d)", self.pin)

    def _write(self, value: int) -> None:
        with self._lock:
            self.init()
            self._backend.pwm_write(self.pin, value)
            self._brightness = value

    def on(self) -> None:
        self._write(PWM_RANGE)
        log.info("LED on")

    def off(self) -> None:
        self._write(0)
        log.info("LED off")

    def brightness(self, level: int) -> None:
        """Set brightness level 0 (10%), 1 (50%) or 2 (100%)."""
        with self._lock:
            self.init()
            try:
                value = BRIGHTNESS_LEVELS[level]
            except (KeyError, TypeError):
                raise ValueError(f"brightness level must be 0-2, got {level!r}") from None
            self._write(value)
        log.info("LED brightness level %d", level)

    def status(self) -> str:
        with self._lock:
            if not self._initialized:
                return "LED: NOT_INITIALIZED"
            if self._brightness == 0:
                return "LED: OFF"
            if self._brightness <= BRIGHTNESS_LEVELS[0]:
                return "LED: LOW"
            if self._brightness <= BRIGHTNESS_LEVELS[1]:
                return "LED: MIDDLE"
            return "LED: HIGH"

    def cleanup(self) -> None:
        with self._lock:
            if not self._initialized:
                return
            self._backend.pwm_write(self.pin, 0)
            self._initialized = False
            self._brightness = 0
        log.info("LED released")