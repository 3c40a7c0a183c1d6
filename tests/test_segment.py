import pytest

from iotctl.buzzer import SCHOOL_BELL, Buzzer
from iotctl.gpio import HIGH, DeviceError, MemoryBackend, PinMode
from iotctl.segment import DIGIT_PATTERNS, SEGMENT_PINS, Segment


@pytest.fixture
def backend():
    return MemoryBackend()


def levels(backend, segment):
    return tuple(backend.level(pin) for pin in segment.pins)


def test_status_before_init(backend):
    assert Segment(backend).status() == "FND: NOT_INITIALIZED"


def test_init_blanks_display(backend):
    seg = Segment(backend)
    seg.init()
    assert seg.pins == SEGMENT_PINS
    assert all(backend.modes[pin] is PinMode.OUTPUT for pin in seg.pins)
    assert levels(backend, seg) == (HIGH,) * 4
    assert seg.status() == "FND: IDLE"


def test_wrong_pin_count_rejected(backend):
    with pytest.raises(ValueError):
        Segment(backend, pins=(1, 2, 3))


@pytest.mark.parametrize("digit", range(10))
def test_display_writes_pattern(backend, digit):
    seg = Segment(backend)
    seg.display(digit)
    assert levels(backend, seg) == DIGIT_PATTERNS[digit]


def test_display_nine_pattern(backend):
    seg = Segment(backend)
    seg.display(9)
    assert levels(backend, seg) == (1, 0, 0, 1)


@pytest.mark.parametrize("digit", [-1, 10])
def test_display_out_of_range(backend, digit):
    seg = Segment(backend)
    with pytest.raises(ValueError):
        seg.display(digit)


@pytest.mark.parametrize("start", [0, 10])
def test_countdown_out_of_range(backend, start):
    seg = Segment(backend)
    with pytest.raises(ValueError):
        seg.countdown(start)
    assert not seg.is_counting()


def test_setup_failure_propagates():
    seg = Segment(MemoryBackend(fail_setup=True))
    with pytest.raises(DeviceError):
        seg.display(1)
    assert seg.status() == "FND: NOT_INITIALIZED"


def test_countdown_runs_to_zero_and_rings_buzzer(backend):
    buzzer = Buzzer(backend, note_ms=1)
    seg = Segment(backend, buzzer=buzzer, tick=0.001, buzz_seconds=0.2)
    seg.countdown(3)
    assert seg.wait(timeout=5)
    assert not seg.is_counting()
    assert seg.status() == "FND: IDLE"
    assert levels(backend, seg) == (HIGH,) * 4
    assert (buzzer.pin, SCHOOL_BELL[0]) in backend.tone_history
    assert not buzzer.is_playing()


def test_countdown_without_buzzer_rings_bell(backend, capsys):
    seg = Segment(backend, tick=0.001)
    seg.countdown(1)
    assert seg.wait(timeout=5)
    assert "\a" in capsys.readouterr().out
    assert levels(backend, seg) == (HIGH,) * 4


def test_countdown_shows_start_digit(backend):
    seg = Segment(backend, tick=1)
    seg.countdown(7)
    assert seg.is_counting()
    assert seg.status() == "FND: COUNTING"
    seg.stop()
    assert (seg.pins[0], DIGIT_PATTERNS[7][0]) in backend.writes


def test_stop_cancels_countdown(backend):
    seg = Segment(backend, tick=1)
    seg.countdown(9)
    seg.stop()
    assert not seg.is_counting()
    assert seg.status() == "FND: IDLE"
    assert levels(backend, seg) == (HIGH,) * 4


def test_display_cancels_countdown(backend):
    seg = Segment(backend, tick=1)
    seg.countdown(9)
    seg.display(4)
    assert not seg.is_counting()
    assert levels(backend, seg) == DIGIT_PATTERNS[4]


def test_off_blanks_display(backend):
    seg = Segment(backend)
    seg.display(5)
    seg.off()
    assert levels(backend, seg) == (HIGH,) * 4


def test_set_display_time_bounds(backend):
    seg = Segment(backend)
    seg.set_display_time(3600)
    assert seg.display_time == 3600
    with pytest.raises(ValueError):
        seg.set_display_time(0)
    with pytest.raises(ValueError):
        seg.set_display_time(3601)
    assert seg.display_time == 3600


def test_cleanup_resets(backend):
    seg = Segment(backend, tick=1)
    seg.countdown(5)
    seg.cleanup()
    assert not seg.is_counting()
    assert seg.status() == "FND: NOT_INITIALIZED"
    assert levels(backend, seg) == (HIGH,) * 4