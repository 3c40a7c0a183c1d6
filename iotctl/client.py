"""Interactive command-line client for the device server."""

from __future__ import annotations

import contextlib
import ipaddress
import re
import signal
import socket
import sys

BUFFER_SIZE = 1024
DEFAULT_PORT = 8080
PROG = "iotctl-client"


def send_command(host: str, port: int, command: str, timeout: float | None = 5.0) -> str:
    """Send one command on a fresh connection and return the first reply read."""
    try:
        ipaddress.IPv4Address(host)
    except ValueError:
        raise ValueError(f"invalid IPv4 address: {host!r}") from None
    with socket.create_connection((host, port), timeout=timeout) as conn:
        conn.sendall(command.encode("utf-8"))
        data = conn.recv(BUFFER_SIZE - 1)
    return data.decode("utf-8", errors="replace")


def interactive(host: str, port: int = DEFAULT_PORT, input_stream=None, output=None) -> None:
    """Read commands line by line and print the server's replies."""
    input_stream = sys.stdin if input_stream is None else input_stream
    output = sys.stdout if output is None else output
    print("명령어 입력 (HELP: 도움말, Ctrl+C: 종료)", file=output)
    try:
        while True:
            output.write("> ")
            output.flush()
            line = input_stream.readline()
            if not line:
                break
            command = line.split("\n", 1)[0]
            if not command:
                continue
            if command in ("quit", "q"):
                print("종료", file=output)
                break
            try:
                reply = send_command(host, port, command)
            except ValueError:
                print("잘못된 IP", file=output)
                continue
            except OSError:
                print("연결 실패", file=output)
                continue
            output.write(reply)
    except KeyboardInterrupt:
        print("\n종료 신호 수신. 클라이언트를 종료합니다.", file=output)


def _print_usage(output=None) -> None:
    output = sys.stdout if output is None else output
    print(f"사용법: {PROG} <서버IP> [포트]", file=output)
    print(f"예시: {PROG} 192.168.0.84", file=output)
    print(f"     {PROG} 192.168.0.84 8080", file=output)


def _parse_port(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


@contextlib.contextmanager
def _ignored_signals():
    names = ("SIGTERM", "SIGQUIT", "SIGHUP", "SIGPIPE")
    previous = {}
    for name in names:
        if hasattr(signal, name):
            signum = getattr(signal, name)
            previous[signum] = signal.signal(signum, signal.SIG_IGN)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        _print_usage()
        return 1
    if args[0] in ("-h", "--help"):
        _print_usage()
        return 0
    host = args[0]
    port = DEFAULT_PORT
    if len(args) >= 2:
        port = _parse_port(args[1])
        if not 0 < port <= 65535:
            print("잘못된 포트 번호")
            return 1
    with _ignored_signals():
        interactive(host, port)
    return 0