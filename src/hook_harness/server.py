from __future__ import annotations

import logging
import socket
import threading
import time
from typing import Iterable

import httpx
import uvicorn

from .app import create_app
from .config import get_harness_config
from .logs import log_json
from .state import StreamServerState
from .stream_events import ScriptedExchange


class StubServer:
    """Runs the scripted stream app on a local port in a background thread.

    Usage::

        with StubServer(exchanges) as stub:
            launch_agent(base_url=stub.base_url)
            ...
            assert stub.state.pending_count() == 0
    """

    def __init__(
        self,
        exchanges: Iterable[ScriptedExchange] = (),
        *,
        host: str | None = None,
        port: int | None = None,
        api_prefix: str | None = None,
        startup_timeout_s: float = 10.0,
    ) -> None:
        cfg = get_harness_config()
        self._host = host or cfg.host
        self._requested_port = cfg.port if port is None else port
        self._api_prefix = cfg.api_prefix if api_prefix is None else api_prefix.rstrip("/")
        self._startup_timeout_s = startup_timeout_s
        self.state = StreamServerState(exchanges)
        self.app = create_app(state=self.state)
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None
        self._sock: socket.socket | None = None
        self._port: int | None = None

    @property
    def port(self) -> int:
        if self._port is None:
            raise RuntimeError("stub server not started")
        return self._port

    @property
    def base_url(self) -> str:
        return f"http://{self._host}:{self.port}{self._api_prefix}"

    def start(self) -> "StubServer":
        if self._thread is not None:
            raise RuntimeError("stub server already started")
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((self._host, self._requested_port))
        self._sock = sock
        self._port = sock.getsockname()[1]

        config = uvicorn.Config(self.app, log_level="warning", access_log=False)
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={"sockets": [sock]},
            name="hook-harness-stub",
            daemon=True,
        )
        self._thread.start()
        self._wait_ready()
        log_json(logging.INFO, "stub.started", base_url=self.base_url)
        return self

    def _wait_ready(self) -> None:
        assert self._server is not None and self._thread is not None
        deadline = time.monotonic() + self._startup_timeout_s
        while not self._server.started:
            if not self._thread.is_alive():
                raise RuntimeError("stub server exited during startup")
            if time.monotonic() >= deadline:
                raise TimeoutError(f"stub server did not start within {self._startup_timeout_s}s")
            time.sleep(0.01)
        # Liveness probe through the same endpoint the agent calls first.
        with httpx.Client(timeout=self._startup_timeout_s) as client:
            resp = client.get(f"{self.base_url}/models")
            resp.raise_for_status()

    def stop(self) -> None:
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=self._startup_timeout_s)
        if self._sock is not None:
            self._sock.close()
        self._server = None
        self._thread = None
        self._sock = None
        log_json(logging.INFO, "stub.stopped", port=self._port)

    def __enter__(self) -> "StubServer":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
