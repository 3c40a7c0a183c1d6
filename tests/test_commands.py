import pytest

from iotctl.buzzer import Buzzer
from iotctl.cds import LightSensor
from iotctl.commands import HELP_TEXT, MAX_RESPONSE_SIZE, CommandProcessor, Devices
from iotctl.gpio import MemoryBackend
from iotctl.led import Led
from iotctl.segment import SEGMENT_PINS, Segment


def _make_devices(backend):
    buzzer = Buzzer(backend, note_ms=1)
    return Devices(
        led=Led(backend),
        segment=Segment(backend, buzzer=buzzer, tick=0.001, buzz_seconds=0.01),
        buzzer=buzzer,
        cds=LightSensor(backend, interval=0.01),
    )


@pytest.fixture
def backend():
    return MemoryBackend(i2c_values=[0, 100])


@pytest.fixture
def devices(backend):
    devs = _make_devices(backend)
    yield devs
    devs.cleanup_all()


@pytest.fixture
def processor(devices):
    return CommandProcessor(devices)


def test_led_on_and_off(processor, backend):
    assert processor.process("LED_ON").text == "OK: LED 켜짐"
    assert backend.pwm(18) == 1024
    assert processor.process("LED_OFF").text == "OK: LED 꺼짐"
    assert backend.pwm(18) == 0


def test_led_prefix_match(processor, backend):
    assert processor.process("LED_ONX").text == "OK: LED 켜짐"
    assert backend.pwm(18) == 1024


def test_led_brightness(processor, backend):
    assert processor.process("LED_BRIGHTNESS 1").text == "OK: LED 밝기 1로 설정"
    assert backend.pwm(18) == 512


def test_led_brightness_out_of_range(processor):
    assert processor.process("LED_BRIGHTNESS 5").text == "ERROR: LED 밝기 설정 실패"


def test_led_brightness_bad_format(processor):
    assert processor.process("LED_BRIGHTNESS x").text == "ERROR: LED_BRIGHTNESS <0-2> 형식으로 입력"


def test_missing_device_reports_failure():
    processor = CommandProcessor(Devices())
    assert processor.process("LED_ON").text == "ERROR: LED 켜기 실패"
    assert processor.process("BUZZER_PLAY").text == "ERROR: 부저 재생 실패"
    assert processor.process("CDS_READ").text == "ERROR: 조도 센서 읽기 실패"


def test_segment_display(processor, backend):
    assert processor.process("SEGMENT_DISPLAY 7").text == "OK: SEGMENT에 7 표시"
    assert [backend.level(p) for p in SEGMENT_PINS] == [0, 1, 1, 1]


def test_segment_display_invalid(processor):
    assert processor.process("SEGMENT_DISPLAY 12").text == "ERROR: SEGMENT 표시 실패"
    assert processor.process("SEGMENT_DISPLAY").text == "ERROR: SEGMENT_DISPLAY <0-9> 형식으로 입력"


def test_segment_countdown_invalid(processor):
    assert processor.process("SEGMENT_COUNTDOWN 0").text == "ERROR: SEGMENT 카운트다운 실패"


def test_segment_countdown_runs_to_end(processor, devices, backend):
    result = processor.process("SEGMENT_COUNTDOWN 1")
    assert result.text == "OK: SEGMENT 카운트다운 1부터 시작"
    assert devices.segment.wait(5)
    assert not devices.segment.is_counting()
    assert all(backend.level(p) == 1 for p in SEGMENT_PINS)


def test_segment_stop_and_off(processor):
    assert processor.process("SEGMENT_STOP").text == "OK: SEGMENT 카운트다운 중지"
    assert processor.process("SEGMENT_OFF").text == "OK: SEGMENT 꺼짐"


def test_buzzer_play_and_stop(processor, devices, backend):
    assert processor.process("BUZZER_PLAY").text == "OK: 부저 재생 시작"
    assert processor.process("BUZZER_STOP").text == "OK: 부저 중지"
    assert not devices.buzzer.is_playing()
    assert backend.tone(19) == 0


def test_cds_read_bright(processor):
    assert processor.process("CDS_READ").text == "OK: 조도값 100 (밝음)"


def test_cds_read_dark():
    devs = _make_devices(MemoryBackend(i2c_values=[0, 200]))
    try:
        assert CommandProcessor(devs).process("CDS_READ").text == "OK: 조도값 200 (어둠)"
    finally:
        devs.cleanup_all()


def test_cds_status_before_init(processor):
    assert processor.process("CDS_GET_STATUS").text == "OK: CDS: NOT_INITIALIZED"


def test_cds_auto_start_stop(processor, devices, backend):
    assert processor.process("CDS_AUTO_START").text == "OK: 조도 센서 자동 LED 제어 시작"
    assert devices.cds.auto_running()
    assert processor.process("CDS_AUTO_STOP").text == "OK: 조도 센서 자동 LED 제어 중지"
    assert not devices.cds.auto_running()
    assert backend.level(17) == 0


def test_all_off(processor, backend):
    processor.process("LED_ON")
    assert processor.process("ALL_OFF").text == "OK: 모든 디바이스 꺼짐"
    assert backend.pwm(18) == 0
    assert backend.level(17) == 0


def test_help(processor):
    result = processor.process("HELP")
    assert result.text == HELP_TEXT
    assert not result.quit


def test_quit(processor):
    result = processor.process("QUIT")
    assert result.text == "OK: 서버 종료"
    assert result.quit
    assert processor.quit_requested


def test_unknown_command(processor):
    result = processor.process("FOO")
    assert result.text == "ERROR: 알 수 없는 명령어 'FOO'"
    assert not result.quit


def test_long_reply_is_clipped(processor):
    text = processor.process("Z" * 2000).text
    assert len(text.encode("utf-8")) < MAX_RESPONSE_SIZE
    assert text.startswith("ERROR: 알 수 없는 명령어 'ZZZ")


def test_init_all_tolerates_failure():
    devs = _make_devices(MemoryBackend(fail_setup=True))
    devs.init_all()
    assert devs.led.status() == "LED: NOT_INITIALIZED"
    assert devs.cds.status() == "CDS: NOT_INITIALIZED"