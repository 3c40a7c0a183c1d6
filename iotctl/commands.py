"""Text commands that drive the attached devices."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from .buzzer import Buzzer
from .cds import BRIGHT_TEXT, DARK_TEXT, LightSensor
from .gpio import DeviceError
from .led import Led
from .segment import Segment

log = logging.getLogger(__name__)

MAX_RESPONSE_SIZE = 512

HELP_TEXT = (
    "LED: LED_ON, LED_OFF, LED_BRIGHTNESS [0-2]\n"
    "SEGMENT: SEGMENT_DISPLAY [0-9], SEGMENT_COUNTDOWN [1-9], SEGMENT_STOP, SEGMENT_OFF\n"
    "BUZZER: BUZZER_PLAY, BUZZER_STOP\n"
    "CDS: CDS_READ, CDS_AUTO_START, CDS_AUTO_STOP, CDS_GET_STATUS\n"
    "기타: ALL_OFF, HELP, QUIT"
)

_FAILURES = (DeviceError, ValueError, OSError)


def _clip(text: str) -> str:
    """Cut a response to what fits the fixed response size."""
    raw = text.encode("utf-8")
    if len(raw) < MAX_RESPONSE_SIZE:
        return text
    return raw[: MAX_RESPONSE_SIZE - 1].decode("utf-8", errors="ignore")


def _parse_int(command: str, keyword: str) -> int | None:
    match = re.match(re.escape(keyword) + r"\s*([+-]?\d+)", command, re.ASCII)
    return int(match.group(1)) if match else None


def _succeeds(action: Callable[[], object]) -> bool:
    try:
        action()
    except _FAILURES as exc:
        log.error("device action failed: %s", exc)
        return False
    return True


@dataclass
class Devices:
    """The set of devices commands act on; any of them may be absent."""

    led: Led | None = None
    segment: Segment | None = None
    buzzer: Buzzer | None = None
    cds: LightSensor | None = None

    def _present(self):
        return [d for d in (self.led, self.segment, self.buzzer, self.cds) if d is not None]

    def init_all(self) -> None:
        """Initialise every device, logging rather than raising failures."""
        for device in self._present():
            _succeeds(device.init)

    def cleanup_all(self) -> None:
        """Release every device, logging rather than raising failures."""
        for device in self._present():
            _succeeds(device.cleanup)


@dataclass(frozen=True)
class CommandResult:
    """The reply to a command and whether it asked the server to stop."""

    text: str
    quit: bool = False


class CommandProcessor:
    """Maps command lines onto device actions and produces reply text."""

    def __init__(self, devices: Devices):
        self.devices = devices
        self.quit_requested = False
        self._prefix_handlers: tuple[tuple[str, Callable[[str], str]], ...] = (
            ("LED_ON", self._led_on),
            ("LED_OFF", self._led_off),
            ("LED_BRIGHTNESS", self._led_brightness),
            ("SEGMENT_DISPLAY", self._segment_display),
            ("SEGMENT_COUNTDOWN", self._segment_countdown),
            ("CDS_AUTO_START", self._cds_auto_start),
            ("CDS_AUTO_STOP", self._cds_auto_stop),
            ("CDS_READ", self._cds_read),
            ("CDS_GET_STATUS", self._cds_get_status),
            ("ALL_OFF", self._all_off),
            ("HELP", lambda _cmd: HELP_TEXT),
            ("QUIT", self._quit),
        )
        self._exact_handlers: dict[str, Callable[[], str]] = {
            "SEGMENT_STOP": self._segment_stop,
            "SEGMENT_OFF": self._segment_off,
            "BUZZER_PLAY": self._buzzer_play,
            "BUZZER_STOP": self._buzzer_stop,
        }

    def process(self, command: str) -> CommandResult:
        """Run one command and return its reply."""
        for prefix, handler in self._prefix_handlers:
            if command.startswith(prefix):
                return CommandResult(_clip(handler(command)), quit=prefix == "QUIT")
        handler = self._exact_handlers.get(command)
        text = handler() if handler else f"ERROR: 알 수 없는 명령어 '{command}'"
        return CommandResult(_clip(text))

    # -- LED ---------------------------------------------------------------

    def _led_on(self, _cmd: str) -> str:
        led = self.devices.led
        ok = led is not None and _succeeds(led.on)
        return "OK: LED 켜짐" if ok else "ERROR: LED 켜기 실패"

    def _led_off(self, _cmd: str) -> str:
        led = self.devices.led
        ok = led is not None and _succeeds(led.off)
        return "OK: LED 꺼짐" if ok else "ERROR: LED 끄기 실패"

    def _led_brightness(self, cmd: str) -> str:
        level = _parse_int(cmd, "LED_BRIGHTNESS")
        if level is None:
            return "ERROR: LED_BRIGHTNESS <0-2> 형식으로 입력"
        led = self.devices.led
        ok = led is not None and _succeeds(lambda: led.brightness(level))
        return f"OK: LED 밝기 {level}로 설정" if ok else "ERROR: LED 밝기 설정 실패"

    # -- segment -----------------------------------------------------------

    def _segment_display(self, cmd: str) -> str:
        num = _parse_int(cmd, "SEGMENT_DISPLAY")
        if num is None:
            return "ERROR: SEGMENT_DISPLAY <0-9> 형식으로 입력"
        segment = self.devices.segment
        ok = segment is not None and _succeeds(lambda: segment.display(num))
        return f"OK: SEGMENT에 {num} 표시" if ok else "ERROR: SEGMENT 표시 실패"

    def _segment_countdown(self, cmd: str) -> str:
        start = _parse_int(cmd, "SEGMENT_COUNTDOWN")
        if start is None:
            return "ERROR: SEGMENT_COUNTDOWN <1-9> 형식으로 입력"
        segment = self.devices.segment
        ok = segment is not None and _succeeds(lambda: segment.countdown(start))
        return f"OK: SEGMENT 카운트다운 {start}부터 시작" if ok else "ERROR: SEGMENT 카운트다운 실패"

    def _segment_stop(self) -> str:
        segment = self.devices.segment
        ok = segment is not None and _succeeds(segment.stop)
        return "OK: SEGMENT 카운트다운 중지" if ok else "ERROR: SEGMENT 중지 실패"

    def _segment_off(self) -> str:
        if self.devices.segment is not None:
            _succeeds(self.devices.segment.off)
        return "OK: SEGMENT 꺼짐"

    # -- buzzer ------------------------------------------------------------

    def _buzzer_play(self) -> str:
        buzzer = self.devices.buzzer
        ok = buzzer is not None and _succeeds(buzzer.play)
        return "OK: 부저 재생 시작" if ok else "ERROR: 부저 재생 실패"

    def _buzzer_stop(self) -> str:
        buzzer = self.devices.buzzer
        ok = buzzer is not None and _succeeds(buzzer.stop)
        return "OK: 부저 중지" if ok else "ERROR: 부저 중지 실패"

    # -- light sensor ------------------------------------------------------

    def _cds_auto_start(self, _cmd: str) -> str:
        cds = self.devices.cds
        ok = cds is not None and _succeeds(cds.auto_led_start)
        return "OK: 조도 센서 자동 LED 제어 시작" if ok else "ERROR: 조도 센서 자동 제어 시작 실패"

    def _cds_auto_stop(self, _cmd: str) -> str:
        cds = self.devices.cds
        ok = cds is not None and _succeeds(cds.auto_led_stop)
        return "OK: 조도 센서 자동 LED 제어 중지" if ok else "ERROR: 조도 센서 자동 제어 중지 실패"

    def _cds_read(self, _cmd: str) -> str:
        cds = self.devices.cds
        if cds is None or not _succeeds(cds.read):
            return "ERROR: 조도 센서 읽기 실패"
        text = DARK_TEXT if cds.is_bright() is False else BRIGHT_TEXT
        return f"OK: 조도값 {cds.value()} ({text})"

    def _cds_get_status(self, _cmd: str) -> str:
        cds = self.devices.cds
        if cds is None:
            return "ERROR: 조도 센서 상태 확인 실패"
        return f"OK: {cds.status()}"

    # -- misc --------------------------------------------------------------

    def _all_off(self, _cmd: str) -> str:
        d = self.devices
        if d.led is not None:
            _succeeds(d.led.off)
        if d.segment is not None:
            _succeeds(d.segment.off)
        if d.buzzer is not None:
            _succeeds(d.buzzer.stop)
        if d.cds is not None:
            _succeeds(d.cds.auto_led_stop)
            _succeeds(d.cds.manual_off)
        return "OK: 모든 디바이스 꺼짐"

    def _quit(self, _cmd: str) -> str:
        self.quit_requested = True
        return "OK: 서버 종료"