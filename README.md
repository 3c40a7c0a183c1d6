# iotctl

Drivers, a command processor, a TCP/HTTP server and an interactive client
for a small board with four devices:

- `Led` (`iotctl.led`): an LED on a PWM pin (GPIO 18) with `on`, `off` and
  `brightness(level)` for levels 0, 1 and 2 (10%, 50% and 100%).
- `Segment` (`iotctl.segment`): a one-digit display driven through four
  lines (GPIO 16, 20, 21, 12). `display(num)` shows 0-9; `countdown(start)`
  counts down from 1-9 once a second in the background, then plays the
  buzzer for three seconds (or rings the terminal bell when no buzzer is
  attached) and blanks the display.
- `Buzzer` (`iotctl.buzzer`): a soft-tone buzzer (GPIO 19) that plays a
  32-note melody in the background.
- `LightSensor` (`iotctl.cds`): a light sensor read through an I2C ADC at
  address 0x48. Readings below 180 count as bright. `auto_led_start()`
  checks the sensor once a second and switches a second LED (GPIO 17) on
  when it is dark and off when it is bright.

Every device sets itself up on first use and raises `ValueError` for
out-of-range arguments and `DeviceError` (from `iotctl.gpio`) when the
hardware layer fails.

## Installing

    pip install .

For the tests:

    pip install .[test]
    pytest

## Running the server

    iot-server -d

The server only runs in daemon mode: `-d` detaches into the background,
logs to syslog, writes its process id to `/var/run/iot_server.pid` (so it
usually needs root) and listens on port 8080. `-h` prints usage; with no
option or any other option it prints usage or an error and exits.

On one port it serves clients one at a time:

- Plain TCP: the server sends a greeting line, then answers each command
  line with one reply line. `QUIT` stops the server.
- HTTP: `GET /` or `GET /index.html` returns `web/index.html` from the
  working directory, or a built-in page if that file is missing.
  `POST /api/command` with a body such as `{"command": "LED_ON"}` runs the
  command and answers with JSON holding `command`, `response` and
  `timestamp`. `OPTIONS` requests get an empty reply with CORS headers;
  anything else gets a 404 page.

SIGINT and SIGTERM shut the server down and release the devices.

## Sending commands

    iot-client 192.168.0.84
    iot-client 192.168.0.84 8080

The server address must be an IPv4 address; the port defaults to 8080.
Each line you type is sent on a new connection and the first data the
server sends back is printed (it begins with the server's greeting line).
Type `quit` or `q` to leave, or press Ctrl+C.

## Commands

| Device  | Commands |
|---------|----------|
| LED     | `LED_ON`, `LED_OFF`, `LED_BRIGHTNESS <0-2>` |
| Segment | `SEGMENT_DISPLAY <0-9>`, `SEGMENT_COUNTDOWN <1-9>`, `SEGMENT_STOP`, `SEGMENT_OFF` |
| Buzzer  | `BUZZER_PLAY`, `BUZZER_STOP` |
| Light   | `CDS_READ`, `CDS_AUTO_START`, `CDS_AUTO_STOP`, `CDS_GET_STATUS` |
| Other   | `ALL_OFF`, `HELP`, `QUIT` |

Replies start with `OK:` or `ERROR:`; an unknown command gets an error
naming it.

## Using it as a library

Devices talk to hardware through a `GpioBackend` from `iotctl.gpio`.
`MemoryBackend` keeps pin levels, PWM values, tones and I2C readings in
memory, so the devices and the command processor run without a board:

```python
from iotctl.gpio import MemoryBackend
from iotctl.server import build_devices
from iotctl.commands import CommandProcessor

backend = MemoryBackend(i2c_values=[0, 120])
processor = CommandProcessor(build_devices(backend))
print(processor.process("LED_BRIGHTNESS 1").text)  # OK: LED 밝기 1로 설정
print(backend.pwm(18))                              # 512
print(processor.process("CDS_READ").text)          # OK: 조도값 120 (밝음)
```

`CommandProcessor.process` returns a `CommandResult` with the reply `text`
and a `quit` flag. `iotctl.web.handle_http_request` turns raw HTTP request
bytes into a complete response, and `IotServer` in `iotctl.server` can be
bound to any host and port.

## What it does not do

The package has no backend that drives real GPIO, PWM, soft-tone or I2C
hardware. `iot-server` builds its devices on `MemoryBackend`, so the
commands change in-memory state only. To control a real board, write a
`GpioBackend` subclass for it and pass it to `build_devices`.