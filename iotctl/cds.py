"""Light sensor on an I2C ADC that can switch an LED on when it gets dark."""

from __future__ import annotations

import logging
import threading

from .gpio import HIGH, LOW, GpioBackend, PinMode

log = logging.getLogger(__name__)

I2C_DEVICE = "/dev/i2c-1"
CDS_I2C_ADDR = 0x48
CDS_CHANNEL = 0
CDS_THRESHOLD = 180
AUTO_LED_PIN = 17
PERIODIC_REPORT = 5

BRIGHT_TEXT = "밝음"
DARK_TEXT = "어둠"


def _describe(bright: bool | None) -> str:
    # An unknown state reads as bright, as a non-zero flag would.
    return DARK_TEXT if bright is False else BRIGHT_TEXT


class LightSensor:
    """A photoresistor read through an ADC, with an automatic LED controller.

    Readings below ``threshold`` count as bright. With ``verbose`` every
    reading and every automatic decision is logged; otherwise the automatic
    controller reports only state changes and every few cycles.
    """

    def __init__(
        self,
        backend: GpioBackend,
        threshold: int = CDS_THRESHOLD,
        led_pin: int = AUTO_LED_PIN,
        interval: float = 1.0,
        verbose: bool = False,
    ):
        self._backend = backend
        self.threshold = threshold
        self.led_pin = led_pin
        self.interval = interval
        self.verbose = verbose
        self._lock = threading.RLock()
        self._led_lock = threading.RLock()
        self._initialized = False
        self._led_initialized = False
        self._handle: int | None = None
        self._value = -1
        self._bright: bool | None = None
        self._running = True
        self._auto_enabled = False
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    # -- automatic LED pin -------------------------------------------------

    def _led_init(self) -> None:
        with self._led_lock:
            if self._led_initialized:
                return
            self._backend.pin_mode(self.led_pin, PinMode.OUTPUT)
            self._backend.digital_write(self.led_pin, LOW)
            self._led_initialized = True
        log.info("auto LED initialised (GPIO %d)", self.led_pin)

    def _led_set(self, level: int) -> None:
        with self._led_lock:
            self._led_init()
            self._backend.digital_write(self.led_pin, level)
        log.info("auto LED %s (GPIO %d)", "ON" if level else "OFF", self.led_pin)

    # -- sensor ------------------------------------------------------------

    def init(self) -> None:
        """Open the ADC and set up the LED pin; does nothing if already done."""
        with self._lock:
            if self._initialized:
                return
            self._handle = self._backend.i2c_open(I2C_DEVICE, CDS_I2C_ADDR)
            self._led_init()
            self._initialized = True
            self._running = True
        log.info("light sensor initialised (I2C address 0x%02X)", CDS_I2C_ADDR)

    def read(self) -> int:
        """Take a reading, update the bright/dark state and return the value."""
        with self._lock:
            self.init()
            self._backend.i2c_write(self._handle, 0x00 | CDS_CHANNEL)
            self._backend.i2c_read(self._handle)  # previous conversion, discarded
            value = self._backend.i2c_read(self._handle)
            self._value = value
            self._bright = value < self.threshold
            if self.verbose or not self._auto_enabled:
                log.info("light value: %d (%s)", value, _describe(self._bright))
            return value

    def value(self) -> int:
        """The last reading, or -1 if none was taken."""
        with self._lock:
            return self._value

    def is_bright(self) -> bool | None:
        """True if bright, False if dark, None before the first reading."""
        with self._lock:
            return self._bright

    # -- automatic control -------------------------------------------------

    def _auto_loop(self, stop_event: threading.Event) -> None:
        log.info("automatic LED control started (GPIO %d on when dark)", self.led_pin)
        previous: bool | None = None
        loop_count = 0
        while self._running and not stop_event.is_set():
            try:
                self.read()
            except Exception as exc:  # keep the controller alive on sensor errors
                log.error("light sensor read failed: %s", exc)
            else:
                bright = self.is_bright()
                should_log = (
                    self.verbose or bright != previous or loop_count % PERIODIC_REPORT == 0
                )
                if bright is False:
                    self._led_set(HIGH)
                    if should_log:
                        log.info("dark (value %d) -> auto LED ON", self.value())
                elif bright is True:
                    self._led_set(LOW)
                    if should_log:
                        log.info("bright (value %d) -> auto LED OFF", self.value())
                if previous is None:
                    log.info("initial light state: %s", _describe(bright))
                elif bright != previous:
                    log.info(
                        "light state changed: %s -> %s",
                        _describe(previous),
                        _describe(bright),
                    )
                previous = bright
            loop_count += 1
            if stop_event.wait(self.interval):
                break
        log.info("automatic LED control finished")

    def auto_led_start(self) -> None:
        """Start switching the LED from the sensor in the background."""
        with self._lock:
            self.init()
            if self._auto_enabled:
                return
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._auto_enabled = True
            thread = threading.Thread(target=self._auto_loop, args=(stop_event,), daemon=True)
            self._thread = thread
            try:
                thread.start()
            except RuntimeError:
                self._auto_enabled = False
                self._thread = None
                raise
        log.info("automatic LED control enabled (GPIO %d)", self.led_pin)

    def _halt_auto(self) -> bool:
        with self._lock:
            if not self._auto_enabled:
                return False
            self._auto_enabled = False
            self._stop_event.set()
            thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        return True

    def auto_led_stop(self) -> None:
        """Stop the automatic controller and switch the LED off."""
        if not self._halt_auto():
            return
        self._led_set(LOW)
        log.info("automatic LED control stopped")

    def auto_running(self) -> bool:
        with self._lock:
            return self._auto_enabled

    def manual_on(self) -> None:
        self._led_set(HIGH)

    def manual_off(self) -> None:
        self._led_set(LOW)

    def status(self) -> str:
        with self._lock:
            if not self._initialized:
                return "CDS: NOT_INITIALIZED"
            state = "AUTO_LED_ON" if self._auto_enabled else "IDLE"
            return f"CDS: {state} (값:{self._value}, {_describe(self._bright)})"

    def cleanup(self) -> None:
        with self._lock:
            self._running = False
        self._halt_auto()
        with self._led_lock:
            if self._led_initialized:
                self._backend.digital_write(self.led_pin, LOW)
                self._led_initialized = False
                log.info("auto LED released")
        with self._lock:
            if self._initialized:
                self._initialized = False
                self._handle = None
                log.info("light sensor released")