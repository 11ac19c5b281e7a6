"""
Structured logging system for the FRMS compliance engine
"""
import logging
import sys
import json
import structlog
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from frms_engine.config import config

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

class JSONFormatter(logging.Formatter):
    """One JSON object per stdlib log record"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)

def _use_json() -> bool:
    return config.logging.format.lower() == "json"

def _build_handler() -> logging.Handler:
    """File handler when LOG_FILE is set, stdout otherwise"""
    if config.logging.log_file:
        handler = logging.FileHandler(config.logging.log_file)
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if _use_json() else logging.Formatter(CONSOLE_FORMAT))
    return handler

def setup_logging() -> structlog.BoundLogger:
    """Route stdlib logging through one handler and configure structlog on top of it"""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(_build_handler())
    root_logger.setLevel(getattr(logging, config.logging.level.upper(), logging.INFO))

    renderer = structlog.processors.JSONRenderer() if _use_json() else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()

class EngineLogger:
    """Specialized logger for compliance engine components"""

    def __init__(self, component: str):
        self.logger = structlog.get_logger(component)
        self.component = component

    def info(self, message: str, **kwargs):
        self.logger.info(message, **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, **kwargs)

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, **kwargs)

    def log_engine_start(self, task: str, context: Optional[Dict[str, Any]] = None):
        """Log computation start"""
        self.logger.info(
            "Engine task started",
            component=self.component,
            task=task,
            context=context or {}
        )

    def log_engine_complete(self, task: str, result: Dict[str, Any], duration: float):
        """Log computation completion"""
        self.logger.info(
            "Engine task completed",
            component=self.component,
            task=task,
            result=result,
            duration_ms=round(duration * 1000, 2)
        )

    def log_engine_error(self, task: str, error: Exception, context: Optional[Dict[str, Any]] = None):
        """Log computation error"""
        self.logger.error(
            "Engine task failed",
            component=self.component,
            task=task,
            error=str(error),
            error_type=type(error).__name__,
            context=context or {},
            exc_info=True
        )

    def log_records_skipped(self, count: int, reason: str):
        """Log records excluded from a computation"""
        if count:
            self.logger.warning(
                "Records skipped",
                component=self.component,
                count=count,
                reason=reason
            )

    def log_limit_status(self, window: str, hours_used: float, max_hours: float, level: str):
        """Log the classification of one limit window"""
        self.logger.debug(
            "Limit evaluated",
            component=self.component,
            window=window,
            hours_used=hours_used,
            max_hours=max_hours,
            level=level
        )

# Global logger instance
logger = setup_logging()

def get_engine_logger(component: str) -> EngineLogger:
    """Get a specialized logger for an engine component"""
    return EngineLogger(component)
