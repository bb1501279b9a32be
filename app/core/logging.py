import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, IO, Optional

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
request_path_ctx: ContextVar[str | None] = ContextVar("request_path", default=None)

REQUEST_ID_HEADER = "X-Request-ID"

# Upstream client libraries that log every call at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore")

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "request_id", "path"}


class RequestContextFilter(logging.Filter):
    """Stamp the current request id and path onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.request_id = request_id_ctx.get() or "-"
        record.path = request_path_ctx.get() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra=`` fields (attempt, source, ...) are kept."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line: Dict[str, Any] = {
            "time": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "path": getattr(record, "path", "-"),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                line[key] = value
        if record.exc_info:
            line["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


def init_logging(debug: bool = False, stream: Optional[IO[str]] = None) -> None:
    level = logging.DEBUG if debug else logging.INFO
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if debug else logging.WARNING)


async def request_context_middleware(request, call_next):  # type: ignore
    # Honour a caller supplied id so gateway logs can be joined with upstream proxies
    rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    rid_token = request_id_ctx.set(rid)
    path_token = request_path_ctx.set(request.url.path)
    logger = logging.getLogger("app.request")
    started = time.perf_counter()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        response.headers[REQUEST_ID_HEADER] = rid
        return response
    finally:
        logger.debug(
            "%s %s -> %d",
            request.method,
            request.url.path,
            status,
            extra={"duration_ms": round((time.perf_counter() - started) * 1000, 1)},
        )
        request_path_ctx.reset(path_token)
        request_id_ctx.reset(rid_token)
