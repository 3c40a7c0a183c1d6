"""TCP and HTTP command server for the attached devices."""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
import select
import signal
import socket
import sys
import threading
from pathlib import Path

from .buzzer import Buzzer
from .cds import LightSensor
from .commands import CommandProcessor, Devices
from .gpio import GpioBackend, MemoryBackend
from .led import Led
from .segment import Segment
from .web import handle_http_request, is_http_request

log = logging.getLogger(__name__)

PORT = 8080
PID_FILE = "/var/run/iot_server.pid"
BUFFER_SIZE = 1024
BACKLOG = 3
SELECT_TIMEOUT = 1.0
GREETING = "연결완료\n".encode("utf-8")
PROG = "iotctl-server"


def _first_line(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    return re.split(r"[\r\n]", text, maxsplit=1)[0]


class IotServer:
    """Accepts clients one at a time and answers their commands."""

    def __init__(
        self,
        processor: CommandProcessor,
        host: str = "0.0.0.0",
        port: int = PORT,
        web_root: str | Path = "web",
    ):
        self.processor = processor
        self.host = host
        self.port = port
        self.web_root = web_root
        self.running = True
        self.address: tuple[str, int] | None = None
        self._sock: socket.socket | None = None
        self._lock = threading.Lock()

    def bind(self) -> tuple[str, int]:
        """Open the listening socket and return the address it is bound to."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.bind((self.host, self.port))
            sock.listen(BACKLOG)
        except OSError:
            sock.close()
            raise
        with self._lock:
            self._sock = sock
            self.address = sock.getsockname()[:2]
        log.info("IoT 서버 시작 완료 - 포트 %d", self.address[1])
        return self.address

    def serve_forever(self) -> None:
        """Accept and serve clients until shut down or asked to quit."""
        if self._sock is None:
            self.bind()
        log.info("메인 루프 시작 - 클라이언트 연결 대기 중...")
        while self.running and not self.processor.quit_requested:
            with self._lock:
                sock = self._sock
            if sock is None:
                break
            try:
                ready, _, _ = select.select([sock], [], [], SELECT_TIMEOUT)
            except (OSError, ValueError) as exc:
                if self.running:
                    log.error("select() 오류: %s", exc)
                break
            if not ready:
                continue
            try:
                conn, addr = sock.accept()
            except BlockingIOError:
                continue
            except OSError as exc:
                if not self.running:
                    break
                log.error("accept() 실패: %s", exc)
                continue
            log.info("새 클라이언트 연결 수락 (%s:%d)", addr[0], addr[1])
            self.handle_client(conn)
        if self.processor.quit_requested:
            self.running = False
        log.info("종료 신호 감지, 메인 루프 종료")

    def handle_client(self, conn: socket.socket) -> None:
        """Serve one connection: an HTTP request or a stream of commands."""
        with conn:
            try:
                self._serve_connection(conn)
            except OSError as exc:
                log.error("client connection error: %s", exc)

    def _serve_connection(self, conn: socket.socket) -> None:
        data = conn.recv(BUFFER_SIZE - 1)
        if not data:
            return
        if is_http_request(data):
            log.info("HTTP 클라이언트 연결됨")
            conn.sendall(handle_http_request(data, self.processor, self.web_root))
            if self.processor.quit_requested:
                self.running = False
            return

        conn.sendall(GREETING)
        log.info("TCP 클라이언트 연결됨")
        line = _first_line(data)
        while True:
            if line:
                log.info("명령어 수신: %s", line)
                result = self.processor.process(line)
                if result.quit:
                    self.running = False
                    return
                conn.sendall((result.text + "\n").encode("utf-8"))
            if not self.running:
                break
            data = conn.recv(BUFFER_SIZE - 1)
            if not data:
                break
            line = _first_line(data)
        log.info("TCP 클라이언트 연결 종료")

    def shutdown(self) -> None:
        """Stop serving and close the listening socket."""
        self.running = False
        with self._lock:
            sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()


def create_pid_file(path: str | Path = PID_FILE) -> None:
    """Write this process's id to the pid file."""
    Path(path).write_text(f"{os.getpid()}\n", encoding="ascii")


def remove_pid_file(path: str | Path = PID_FILE) -> None:
    """Remove the pid file if it exists."""
    Path(path).unlink(missing_ok=True)


def _configure_logging(daemon: bool, name: str = PROG) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    if daemon:
        address = "/dev/log" if os.path.exists("/dev/log") else ("localhost", 514)
        handler: logging.Handler = logging.handlers.SysLogHandler(
            address=address, facility=logging.handlers.SysLogHandler.LOG_DAEMON
        )
        handler.setFormatter(logging.Formatter(f"{name}: %(message)s"))
    elif sys.stdout.isatty():
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.NullHandler()
    root.addHandler(handler)
    root.setLevel(logging.INFO)


def daemonize(name: str = PROG, pid_file: str | Path = PID_FILE) -> None:
    """Detach into the background, log to syslog and write the pid file."""
    import resource

    os.umask(0)
    _, max_files = resource.getrlimit(resource.RLIMIT_NOFILE)
    if os.fork():
        os._exit(0)
    os.setsid()
    signal.signal(signal.SIGHUP, signal.SIG_IGN)
    if os.fork():
        os._exit(0)

    cwd = os.getcwd()
    if max_files == resource.RLIM_INFINITY:
        max_files = 1024
    os.closerange(0, max_files)
    fds = (os.open(os.devnull, os.O_RDWR), os.dup(0), os.dup(0))
    _configure_logging(daemon=True, name=name)
    if fds != (0, 1, 2):
        raise OSError(f"unexpected standard descriptors {fds}")
    os.chdir(cwd)
    create_pid_file(pid_file)
    log.info("IoT 서버 데몬 프로세스 시작 (PID: %d)", os.getpid())


def build_devices(backend: GpioBackend) -> Devices:
    """The full device set on one backend, the display wired to the buzzer."""
    buzzer = Buzzer(backend)
    return Devices(
        led=Led(backend),
        segment=Segment(backend, buzzer=buzzer),
        buzzer=buzzer,
        cds=LightSensor(backend),
    )


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    usage = f"{PROG} [-d|-h]\n  -d: 데몬 모드\n  -h: 도움말"
    if not args:
        print(f"Usage: {usage}")
        return -1
    if args[0] == "-h":
        print(f"사용법: {usage}")
        return 0
    if args[0] != "-d":
        print(f"잘못된 옵션: {args[0]}")
        return -1
    try:
        daemonize(PROG, PID_FILE)
    except OSError:
        print("데몬화 실패", file=sys.stderr)
        return -1

    devices = build_devices(MemoryBackend())
    processor = CommandProcessor(devices)
    server = IotServer(processor)

    def on_signal(signum, _frame):
        log.info("종료 신호 수신 (%d)", signum)
        server.shutdown()

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)

    log.info("IoT 서버 시작 중...")
    devices.init_all()
    try:
        try:
            server.bind()
        except OSError as exc:
            log.error("바인드 실패: %s (포트 %d가 이미 사용 중일 수 있음)", exc, server.port)
            return -1
        server.serve_forever()
    finally:
        log.info("서버 종료 중...")
        devices.cleanup_all()
        server.shutdown()
        remove_pid_file(PID_FILE)
    return 0