from __future__ import annotations

import argparse
import json
import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Sequence

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .collector import collect
from .config import get_harness_config
from .errors import HarnessError, QueueExhaustedError
from .logs import configure_logging, log_json
from .recorder import record_from_env
from .scenario import EXPECTED_HOOK_EVENTS, one_tool_call_exchanges
from .state import StreamServerState
from .stream_events import SSE_CONTENT_TYPE, ScriptedExchange
from .validator import validate_hook_sequence

_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE"]
CAPABILITIES_PAYLOAD: dict[str, Any] = {"models": []}
COMPACT_PAYLOAD: dict[str, Any] = {"summary": "ok"}


def create_app(
    exchanges: Iterable[ScriptedExchange] | None = None,
    *,
    state: StreamServerState | None = None,
) -> FastAPI:
    if state is None:
        state = StreamServerState(exchanges or ())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        app.state.start_time = time.monotonic()
        yield

    app = FastAPI(
        title="Hook Harness Stub",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.stub = state

    @app.exception_handler(StarletteHTTPException)
    async def not_found_for_unrouted_methods(request: Request, exc: StarletteHTTPException):
        # Methods outside the catch-all route are unknown requests, not 405s.
        if exc.status_code == 405:
            exc = StarletteHTTPException(status_code=404, detail="Not Found")
        return await http_exception_handler(request, exc)

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        request_id = request.headers.get("x-request-id", "").strip() or uuid.uuid4().hex
        request.state.request_id = request_id
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            latency_ms = int((time.monotonic() - start) * 1000)
            log_json(
                logging.ERROR,
                "request.failed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                latency_ms=latency_ms,
            )
            raise
        latency_ms = int((time.monotonic() - start) * 1000)
        response.headers["x-request-id"] = request_id
        log_json(
            logging.INFO,
            "request.completed",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        return response

    @app.api_route("/{full_path:path}", methods=_ALL_METHODS, include_in_schema=False)
    async def dispatch(request: Request, full_path: str) -> Response:
        path = request.url.path.rstrip("/")
        if request.method == "GET" and path.endswith("/models"):
            return JSONResponse(CAPABILITIES_PAYLOAD)
        if request.method == "POST" and path.endswith("/responses/compact"):
            return JSONResponse(COMPACT_PAYLOAD)
        if request.method == "POST" and path.endswith("/responses"):
            return await _create_response(request, app.state.stub)
        raise HTTPException(status_code=404, detail="Not Found")

    return app


def _decode_request_body(raw: bytes) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(parsed, dict) or not parsed:
        return None
    return parsed


async def _create_response(request: Request, state: StreamServerState) -> Response:
    raw = await request.body()
    payload = _decode_request_body(raw)
    if payload is not None:
        state.record_request(payload)
    else:
        # Lenient: bodyless or undecodable requests are still served.
        log_json(
            logging.WARNING,
            "responses.body_unrecorded",
            request_id=getattr(request.state, "request_id", None),
            body_len=len(raw),
        )

    try:
        exchange = state.pop_next_exchange()
    except QueueExhaustedError as exc:
        log_json(
            logging.ERROR,
            "responses.exhausted",
            request_id=getattr(request.state, "request_id", None),
        )
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    log_json(
        logging.INFO,
        "responses.served",
        request_id=getattr(request.state, "request_id", None),
        events=[ev.kind for ev in exchange.events],
        remaining=state.pending_count(),
    )
    return StreamingResponse(
        _stream_frames(exchange),
        media_type=SSE_CONTENT_TYPE,
        headers={"cache-control": "no-cache"},
    )


async def _stream_frames(exchange: ScriptedExchange) -> AsyncIterator[bytes]:
    # One chunk per frame so clients observe events as they are written.
    for frame in exchange.frames():
        yield frame


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.command == "serve":
        return _serve(args)
    if args.command == "record":
        record_from_env(Path(args.out_dir), args.expected)
        return 0
    if args.command == "check":
        return _check(args)
    return 2


def _serve(args: argparse.Namespace) -> int:
    configure_logging()
    app = create_app(one_tool_call_exchanges(args.tool_command))
    uvicorn.run(app, host=args.host, port=args.port, reload=False)
    return 0


def _check(args: argparse.Namespace) -> int:
    configure_logging()
    expected = list(args.expect)
    minimum = args.min_count if args.min_count is not None else len(expected)
    timeout_s = args.timeout_ms / 1000.0 if args.timeout_ms is not None else None
    try:
        calls = collect(Path(args.dir), minimum, timeout_s)
        validate_hook_sequence(calls, expected)
    except HarnessError as exc:
        print(f"hooks did not fire as expected: {exc}", file=sys.stderr)
        return 1
    print("OK")
    return 0


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    cfg = get_harness_config()
    parser = argparse.ArgumentParser(prog="hook-harness")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the scripted Responses stub")
    serve.add_argument("--host", default=cfg.host)
    serve.add_argument("--port", type=int, default=cfg.port)
    serve.add_argument(
        "--tool-command",
        default="echo hook-ok",
        help="shell command the scripted function call asks the agent to run",
    )

    record = sub.add_parser("record", help="write one hook record from the environment")
    record.add_argument("--out-dir", required=True)
    record.add_argument("expected", nargs="?", default=None)

    check = sub.add_parser("check", help="collect hook records and validate their order")
    check.add_argument("--dir", required=True)
    check.add_argument("--expect", nargs="+", default=list(EXPECTED_HOOK_EVENTS))
    check.add_argument("--min-count", type=int, default=None)
    check.add_argument("--timeout-ms", type=int, default=None)
    return parser.parse_args(argv)


if __name__ == "__main__":
    sys.exit(main())
