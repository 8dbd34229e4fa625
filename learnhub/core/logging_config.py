"""
API Logging Configuration
Provides structured logging for API requests, responses, and engine events
"""
import logging
import logging.config
import json
import os
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from learnhub.core.config import settings

# Extra record attributes copied into the JSON payload when present
EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "session_id",
    "course_id",
    "quiz_id",
    "error_id",
    "event_type",
    "status_code",
    "process_time",
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def build_logging_config(log_dir: str, log_level: str) -> Dict[str, Any]:
    """Build the dictConfig for the service"""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JSONFormatter,
            },
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            }
        },
        "handlers": {
            "console": {
                "level": log_level,
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout"
            },
            "file": {
                "level": "DEBUG",
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "json",
                "filename": os.path.join(log_dir, "api.log"),
                "maxBytes": 10485760,  # 10MB
                "backupCount": 5
            },
            "error_file": {
                "level": "ERROR",
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "json",
                "filename": os.path.join(log_dir, "errors.log"),
                "maxBytes": 10485760,  # 10MB
                "backupCount": 10
            }
        },
        "loggers": {
            "learnhub": {
                "level": "DEBUG",
                "handlers": ["console", "file", "error_file"],
                "propagate": False
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False
            },
            "uvicorn.error": {
                "level": "INFO",
                "handlers": ["console", "error_file"],
                "propagate": False
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False
            }
        },
        "root": {
            "level": "INFO",
            "handlers": ["console"]
        }
    }


LOGGING_CONFIG = build_logging_config(settings.LOG_DIR, settings.LOG_LEVEL)


class APILoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for API request/response logging"""

    def __init__(self, app, log_requests: bool = True, log_responses: bool = True):
        super().__init__(app)
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.logger = logging.getLogger("learnhub.api")

    async def dispatch(self, request: Request, call_next):
        """Log API requests and responses"""
        start_time = time.time()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        if self.log_requests:
            self.logger.info(
                f"Incoming request: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "event_type": "request_received"
                }
            )

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            self.logger.error(
                f"Request processing failed: {str(e)}",
                extra={
                    "request_id": request_id,
                    "process_time": process_time,
                    "event_type": "request_failed"
                },
                exc_info=True
            )
            raise

        process_time = time.time() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)

        if self.log_responses:
            self._log_response(request, response, request_id, process_time)

        return response

    def _log_response(
        self,
        request: Request,
        response: Response,
        request_id: str,
        process_time: float
    ):
        """Log response details"""
        if response.status_code >= 500:
            log_level = logging.ERROR
        elif response.status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        self.logger.log(
            log_level,
            f"Response: {request.method} {request.url.path} -> {response.status_code}",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "process_time": round(process_time * 1000, 2),
                "event_type": "response_sent"
            }
        )


def setup_logging():
    """Setup logging configuration"""
    os.makedirs(settings.LOG_DIR, exist_ok=True)

    logging.config.dictConfig(LOGGING_CONFIG)

    logger = logging.getLogger("learnhub")
    logger.info("Logging system initialized")

    return logger
