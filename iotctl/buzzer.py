"""Soft-tone buzzer that plays the school-bell melody in the background."""

from __future__ import annotations

import logging
import threading

from .gpio import GpioBackend

log = logging.getLogger(__name__)

BUZZER_PIN = 19
NOTE_MS = 280

SCHOOL_BELL = (
    391, 391, 440, 440, 391, 391, 329, 329,
    391, 391, 329, 329, 293, 293, 293, 0,
    391, 391, 440, 440, 391, 391, 329, 329,
    391, 329, 293, 329, 261, 261, 261, 0,
)


class Buzzer:
    """A buzzer on a soft-tone pin; initialises itself on first use."""

    def __init__(self, backend: GpioBackend, pin: int = BUZZER_PIN, note_ms: float = NOTE_MS):
        self._backend = backend
        self.pin = pin
        self.note_ms = note_ms
        self._lock = threading.RLock()
        self._initialized = False
        self._playing = False
        self._running = True
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def init(self) -> None:
        """Set up the tone pin, silent; does nothing if already done."""
        with self._lock:
            if self._initialized:
                return
            self._backend.setup()
            self._backend.soft_tone_create(self.pin)
            self._backend.soft_tone_write(self.pin, 0)
            self._initialized = True
            self._running = True
        log.info("buzzer initialised (GPIO %d)", self.pin)

    def _halt(self) -> None:
        with self._lock:
            thread, self._thread = self._thread, None
            if thread is not None:
                self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        with self._lock:
            if self._thread is None:
                self._playing = False

    def _melody(self, stop_event: threading.Event) -> None:
        log.info("buzzer melody started")
        delay = self.note_ms / 1000
        for note in SCHOOL_BELL:
            if stop_event.is_set() or not self._running:
                break
            self._backend.soft_tone_write(self.pin, note)
            if stop_event.wait(delay):
                break
        self._backend.soft_tone_write(self.pin, 0)
        with self._lock:
            if self._stop_event is stop_event:
                self._playing = False
        log.info("buzzer melody finished")

    def play(self) -> None:
        """Start the melody, restarting it if it is already playing."""
        self.init()
        self._halt()
        with self._lock:
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._playing = True
            thread = threading.Thread(target=self._melody, args=(stop_event,), daemon=True)
            self._thread = thread
            thread.start()

    def stop(self) -> None:
        """Stop the melody and silence the pin."""
        with self._lock:
            if not self._initialized:
                return
        self._halt()
        self._backend.soft_tone_write(self.pin, 0)
        log.info("buzzer stopped")

    def is_playing(self) -> bool:
        with self._lock:
            return self._playing

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the melody to end; True if it has."""
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def status(self) -> str:
        with self._lock:
            if not self._initialized:
                return "BUZZER: NOT_INITIALIZED"
            if self._playing:
                return "BUZZER: PLAYING"
            return "BUZZER: IDLE"

    def cleanup(self) -> None:
        with self._lock:
            self._running = False
        self._halt()
        with self._lock:
            if not self._initialized:
                return
            self._backend.soft_tone_write(self.pin, 0)
            self._initialized = False
        log.info("buzzer released")