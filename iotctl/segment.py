"""Single-digit display driven through a four-line BCD decoder."""

from __future__ import annotations

import logging
import sys
import threading

from .buzzer import Buzzer
from .gpio import HIGH, LOW, DeviceError, GpioBackend, PinMode

log = logging.getLogger(__name__)

SEGMENT_PINS = (16, 20, 21, 12)

DIGIT_PATTERNS = (
    (0, 0, 0, 0), (0, 0, 0, 1), (0, 0, 1, 0), (0, 0, 1, 1), (0, 1, 0, 0),
    (0, 1, 0, 1), (0, 1, 1, 0), (0, 1, 1, 1), (1, 0, 0, 0), (1, 0, 0, 1),
)

MIN_DISPLAY_TIME = 1
MAX_DISPLAY_TIME = 3600


class Segment:
    """A digit display with a background countdown that ends on the buzzer."""

    def __init__(
        self,
        backend: GpioBackend,
        buzzer: Buzzer | None = None,
        pins=SEGMENT_PINS,
        tick: float = 0.1,
        buzz_seconds: float = 3.0,
    ):
        self.pins = tuple(pins)
        if len(self.pins) != len(DIGIT_PATTERNS[0]):
            raise ValueError(f"expected {len(DIGIT_PATTERNS[0])} pins, got {len(self.pins)}")
        self._backend = backend
        self._buzzer = buzzer
        self.tick = tick
        self.buzz_seconds = buzz_seconds
        self.display_time = 1
        self._lock = threading.RLock()
        self._initialized = False
        self._running = True
        self._counting = False
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def init(self) -> None:
        """Set up the pins with the display blank; does nothing if already done."""
        with self._lock:
            if self._initialized:
                return
            self._backend.setup()
            for pin in self.pins:
                self._backend.pin_mode(pin, PinMode.OUTPUT)
                self._backend.digital_write(pin, HIGH)
            self._initialized = True
            self._running = True
        log.info("segment display initialised")

    def _write_digit(self, digit: int) -> None:
        for pin, bit in zip(self.pins, DIGIT_PATTERNS[digit]):
            self._backend.digital_write(pin, HIGH if bit else LOW)

    def _blank(self) -> None:
        for pin in self.pins:
            self._backend.digital_write(pin, HIGH)

    def _cancel_countdown(self) -> None:
        with self._lock:
            thread, self._thread = self._thread, None
            if thread is not None:
                self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            log.info("stopping running countdown")
            thread.join()
        with self._lock:
            self._counting = False

    def display(self, num: int) -> None:
        """Show a digit 0-9, cancelling any countdown."""
        self.init()
        if not 0 <= num <= 9:
            raise ValueError(f"digit must be 0-9, got {num}")
        self._cancel_countdown()
        with self._lock:
            self._write_digit(num)
        log.info("segment shows %d", num)

    def _ring(self, stop_event: threading.Event) -> None:
        if self._buzzer is None:
            log.info("no buzzer available, ringing terminal bell")
            sys.stdout.write("\a")
            sys.stdout.flush()
            return
        try:
            self._buzzer.play()
        except DeviceError as exc:
            log.error("buzzer failed: %s", exc)
            return
        stop_event.wait(self.buzz_seconds)
        self._buzzer.stop()

    def _run_countdown(self, start_num: int, stop_event: threading.Event) -> None:
        log.info("countdown started from %d", start_num)
        try:
            for digit in range(start_num, -1, -1):
                if stop_event.is_set() or not self._running:
                    log.info("countdown stop requested")
                    break
                with self._lock:
                    if self._initialized:
                        self._write_digit(digit)
                if digit:
                    stop_event.wait(self.tick * 10)
                    continue
                log.info("countdown finished, ringing buzzer")
                self._ring(stop_event)
                with self._lock:
                    if self._initialized:
                        self._blank()
        finally:
            with self._lock:
                if self._stop_event is stop_event:
                    self._counting = False
            log.info("countdown thread finished")

    def countdown(self, start_num: int) -> None:
        """Count down from 1-9 to 0 in the background, then ring the buzzer."""
        if not 1 <= start_num <= 9:
            raise ValueError(f"countdown start must be 1-9, got {start_num}")
        self.init()
        self._cancel_countdown()
        with self._lock:
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._counting = True
            thread = threading.Thread(
                target=self._run_countdown, args=(start_num, stop_event), daemon=True
            )
            self._thread = thread
            thread.start()

    def stop(self) -> None:
        """Stop a running countdown and blank the display."""
        with self._lock:
            if not self._counting:
                return
        self._cancel_countdown()
        with self._lock:
            if self._initialized:
                self._blank()
        log.info("countdown stopped")

    def off(self) -> None:
        """Cancel any countdown and blank the display."""
        self._cancel_countdown()
        with self._lock:
            if self._initialized:
                self._blank()
                log.info("segment off")

    def set_display_time(self, seconds: int) -> None:
        if not MIN_DISPLAY_TIME <= seconds <= MAX_DISPLAY_TIME:
            raise ValueError(
                f"display time must be {MIN_DISPLAY_TIME}-{MAX_DISPLAY_TIME} seconds, got {seconds}"
            )
        self.display_time = seconds

    def is_counting(self) -> bool:
        with self._lock:
            return self._counting

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the countdown to end; True if it has."""
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def status(self) -> str:
        with self._lock:
            if not self._initialized:
                return "FND: NOT_INITIALIZED"
            if self._counting:
                return "FND: COUNTING"
            return "FND: IDLE"

    def cleanup(self) -> None:
        with self._lock:
            self._running = False
        self._cancel_countdown()
        with self._lock:
            if self._initialized:
                self._blank()
                self._initialized = False
                log.info("segment display released")
            self._counting = False