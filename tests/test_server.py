import os
import socket
import threading

import pytest

from iotctl.commands import CommandProcessor, Devices
from iotctl.gpio import MemoryBackend
from iotctl.led import Led
from iotctl.server import (
    GREETING,
    IotServer,
    build_devices,
    create_pid_file,
    main,
    remove_pid_file,
)


def _drain(sock):
    chunks = []
    while True:
        data = sock.recv(4096)
        if not data:
            break
        chunks.append(data)
    sock.close()
    return b"".join(chunks)


def _exchange(server, payload):
    server_side, client_side = socket.socketpair()
    client_side.sendall(payload)
    client_side.shutdown(socket.SHUT_WR)
    server.handle_client(server_side)
    return _drain(client_side)


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def server(backend):
    processor = CommandProcessor(Devices(led=Led(backend)))
    return IotServer(processor, "127.0.0.1", 0)


def test_tcp_command_gets_greeting_and_reply(server, backend):
    reply = _exchange(server, b"LED_ON\r\n")
    assert reply == GREETING + "OK: LED 켜짐\n".encode("utf-8")
    assert backend.pwm(18) == 1024


def test_greeting_text(server):
    assert _exchange(server, b"\r\n") == "연결완료\n".encode("utf-8")


def test_quit_closes_without_reply_and_stops(server):
    reply = _exchange(server, b"QUIT\n")
    assert reply == GREETING
    assert server.running is False
    assert server.processor.quit_requested is True


def test_http_not_found(server):
    reply = _exchange(server, b"GET /missing HTTP/1.1\r\n\r\n")
    assert reply.startswith(b"HTTP/1.1 404 Not Found\r\n")
    assert GREETING not in reply


def test_http_post_command(server, backend):
    request = b'POST /api/command HTTP/1.1\r\n\r\n{"command": "LED_OFF"}'
    reply = _exchange(server, request)
    assert reply.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b'"command": "LED_OFF"' in reply
    assert backend.pwm(18) == 0


def test_empty_connection_sends_nothing(server, backend):
    server_side, client_side = socket.socketpair()
    client_side.shutdown(socket.SHUT_WR)
    server.handle_client(server_side)
    assert _drain(client_side) == b""
    assert server.processor.quit_requested is False
    reply = _exchange(server, b"LED_ON\n")
    assert reply == GREETING + "OK: LED 켜짐\n".encode("utf-8")
    assert backend.pwm(18) == 1024


def test_serve_forever_stops_on_quit(server):
    host, port = server.bind()
    assert port > 0
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    with socket.create_connection((host, port), timeout=5) as conn:
        conn.sendall(b"QUIT\n")
        data = _drain(conn)
    thread.join(5)
    assert not thread.is_alive()
    assert data == GREETING


def test_shutdown_stops_serving(server):
    server.bind()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    server.shutdown()
    thread.join(5)
    assert not thread.is_alive()
    assert server.running is False


def test_pid_file_round_trip(tmp_path):
    path = tmp_path / "server.pid"
    create_pid_file(path)
    assert path.read_text() == f"{os.getpid()}\n"
    remove_pid_file(path)
    assert not path.exists()
    remove_pid_file(path)
    assert not path.exists()


def test_pid_file_in_missing_directory(tmp_path):
    with pytest.raises(OSError):
        create_pid_file(tmp_path / "missing" / "server.pid")


def test_build_devices_drives_backend():
    backend = MemoryBackend()
    devices = build_devices(backend)
    processor = CommandProcessor(devices)
    assert processor.process("LED_ON").text == "OK: LED 켜짐"
    assert backend.pwm(18) == 1024
    assert processor.process("BUZZER_STOP").text == "OK: 부저 중지"
    devices.cleanup_all()
    assert devices.led.status() == "LED: NOT_INITIALIZED"


def test_main_without_arguments(capsys):
    assert main([]) == -1
    assert "Usage:" in capsys.readouterr().out


def test_main_help(capsys):
    assert main(["-h"]) == 0
    assert "사용법" in capsys.readouterr().out


def test_main_bad_option(capsys):
    assert main(["-x"]) == -1
    assert "잘못된 옵션: -x" in capsys.readouterr().out