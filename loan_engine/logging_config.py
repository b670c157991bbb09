"""
Structured Logging Configuration Module

Provides JSON-formatted structured logging for loan engine calculations.
The engine modules only emit records; handlers are attached by the host
application through setup_logging().
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""
    
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module if hasattr(record, 'module') else record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, 'correlation_id', None),
            "operation": getattr(record, 'operation', None),
            "loan_ref": getattr(record, 'loan_ref', None),
            "extra": getattr(record, 'extra', None)
        }
        
        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}
        
        # Add exception info if present
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)
        
        # Decimals and dates serialize as strings to keep full precision
        return json.dumps(log_entry, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO", logger_name: str = "loan_engine",
                  log_format: str = "json") -> logging.Logger:
    """
    Setup structured logging for the engine.
    
    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Name of the logger
        log_format: "json" for structured output, "text" for plain lines
        
    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    
    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    
    handler = logging.StreamHandler()
    if log_format == "text":
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        handler.setFormatter(JSONFormatter())
    
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    
    # Prevent propagation to avoid duplicate logs
    logger.propagate = False
    
    return logger


def setup_logging_from_config(settings=None) -> logging.Logger:
    """Setup logging using LoanEngineConfig values"""
    if settings is None:
        from .config import get_config
        settings = get_config()
    return setup_logging(level=settings.log_level, log_format=settings.log_format)


def get_logger(name: str = "loan_engine") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def log_calculation(logger: logging.Logger, level: str, message: str,
                    operation: Optional[str] = None, loan_ref: Optional[str] = None,
                    correlation_id: Optional[str] = None,
                    extra: Optional[dict] = None):
    """
    Log a calculation step with structured data.
    
    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, etc.)
        message: Log message
        operation: Engine operation being performed (e.g. "generate_schedule")
        loan_ref: Caller-supplied loan reference, if any
        correlation_id: Correlation ID for request tracing
        extra: Additional structured data
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return
    
    record = logger.makeRecord(
        logger.name, levelno,
        __name__, 0, message, (), None
    )
    
    # Add custom fields
    if operation:
        record.operation = operation
    if loan_ref:
        record.loan_ref = loan_ref
    if correlation_id:
        record.correlation_id = correlation_id
    if extra:
        record.extra = extra
    
    logger.handle(record)
