# fuel_ledger/utils/logger.py

import uuid
import sys
import logging
from typing import Optional, Dict, Any, List, Callable
from datetime import datetime, timezone
from contextvars import ContextVar

import structlog
from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware


# Request ID of the request being served, set by LoggingMiddleware
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

Processor = Callable[[Any, str, Dict[str, Any]], Dict[str, Any]]


def add_request_id(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add request ID to log context."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def app_context(app_name: str, environment: str) -> Processor:
    """Build a processor stamping every event with the service name and environment."""

    def add_app_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("app", app_name)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_app_context


def _handler(handler: logging.Handler, level: int, renderer: Processor, pre_chain: List[Processor]) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=pre_chain,
        )
    )
    return handler


def setup_logging(
    log_level: str = "INFO",
    use_json: bool = True,
    log_file: Optional[str] = None,
    app_name: str = "fuel-ledger",
    environment: str = "development"
) -> None:
    """
    Route structlog and stdlib logging through one set of handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: JSON lines on stdout instead of console output
        log_file: Optional path of a file that receives JSON lines
        app_name: Service name added to every event
        environment: Environment name added to every event
    """
    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        app_context(app_name, environment),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    level = getattr(logging, log_level.upper(), logging.INFO)

    if use_json:
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(
            colors=False,
            exception_formatter=structlog.dev.plain_traceback
        )

    handlers = [_handler(logging.StreamHandler(sys.stdout), level, console_renderer, shared_processors)]
    if log_file:
        handlers.append(
            _handler(logging.FileHandler(log_file), level, structlog.processors.JSONRenderer(), shared_processors)
        )

    logging.root.handlers = handlers
    logging.root.setLevel(level)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structlog logger, bound to the stdlib logger of that name."""
    return structlog.get_logger(name)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with its duration and echoes the X-Request-ID header,
    generating one when the caller sent none.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        token = request_id_var.set(request_id)

        logger = get_logger("api.access")
        start_time = datetime.now(timezone.utc)

        def elapsed_ms() -> float:
            return round((datetime.now(timezone.utc) - start_time).total_seconds() * 1000, 2)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=elapsed_ms(),
                error=str(e),
                exc_info=True
            )
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "request_id": request_id},
                headers={"X-Request-ID": request_id}
            )
        else:
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=elapsed_ms(),
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_var.reset(token)


def setup_app_logging(
    app: FastAPI,
    log_level: str = "INFO",
    use_json: bool = True,
    log_file: Optional[str] = None,
    app_name: Optional[str] = None,
    environment: str = "development",
) -> None:
    """Configure logging and install the request logging middleware on the app."""
    setup_logging(
        log_level=log_level,
        use_json=use_json,
        log_file=log_file,
        app_name=app_name or app.title,
        environment=environment,
    )
    app.add_middleware(LoggingMiddleware)
