"""
Unified Logger System.

JSON-only structured logging for the import versioning service.

Design Principles:
    - Strong typing with dataclasses (stdlib only)
    - Enum safety for categories
    - Component-specific loggers
    - Clean factory pattern

Exports:
    ComponentType: Enum for component types
    LogLevel: Enum for log levels
    LogContext: Correlation context (version/job/request)
    ContextLoggerAdapter: Binds a LogContext to a shared component logger
    JSONFormatter: JSON line formatter
    LoggerFactory: Factory for creating loggers
    log_exceptions: Exception logging decorator

Dependencies:
    Standard library only (logging, enum, dataclasses, json)
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass
import logging
import sys
import os
import json
import traceback
from functools import wraps


# ============================================================================
# COMPONENT TYPES
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the service layers.

    Each layer has specific logging needs and levels.
    """
    SERVICE = "service"        # Ledger, diff, publish, rollback
    REPOSITORY = "repository"  # Ledger tables, production table, artifacts
    FACTORY = "factory"        # Repository and service wiring
    SCHEMA = "schema"          # DDL generation and deployment
    TRIGGER = "trigger"        # HTTP entry points
    ADAPTER = "adapter"        # File format converters
    VALIDATOR = "validator"    # Import validator
    JOB = "job"                # Background job runner


# ============================================================================
# LOG LEVELS
# ============================================================================

class LogLevel(Enum):
    """Standard Python log levels as enum for type safety."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)

    @classmethod
    def from_string(cls, level: str) -> 'LogLevel':
        """Create from string, case-insensitive."""
        return cls[level.upper()]


# ============================================================================
# LOG CONTEXT - Correlation and tracking
# ============================================================================

@dataclass
class LogContext:
    """
    Context for log correlation across an import's lifecycle.

    A version id ties together upload, configure, preview and every job
    submitted against that version.
    """
    version_id: Optional[str] = None   # IV-xxxxxxxx
    job_id: Optional[str] = None       # IJ-xxxxxxxx
    job_type: Optional[str] = None     # validation | publish | rollback
    request_id: Optional[str] = None   # HTTP request ID
    user_id: Optional[str] = None      # Uploader / publisher identity

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            k: v for k, v in {
                'version_id': self.version_id,
                'job_id': self.job_id,
                'job_type': self.job_type,
                'request_id': self.request_id,
                'user_id': self.user_id,
            }.items() if v is not None
        }


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Adds a LogContext to every record as custom dimensions.

    The wrapped component logger is shared by every adapter.
    """

    def __init__(self, logger: logging.Logger, context: LogContext):
        super().__init__(logger, context.to_dict())

    def process(self, msg, kwargs):
        extra = kwargs.get("extra") or {}
        dims = dict(self.extra)
        dims.update(extra.get("custom_dimensions", {}))
        kwargs["extra"] = {**extra, "custom_dimensions": dims}
        return msg, kwargs


# ============================================================================
# JSON FORMATTER
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per line on stdout, so container log collectors can
    parse records without a custom grammar.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY
# ============================================================================

def _default_level() -> LogLevel:
    if os.getenv('DEBUG_LOGGING', '').lower() == 'true':
        return LogLevel.DEBUG
    level = os.getenv('LOG_LEVEL')
    if level:
        try:
            return LogLevel.from_string(level)
        except KeyError:
            return LogLevel.INFO
    return LogLevel.INFO


class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(
            ComponentType.SERVICE,
            "Publisher"
        )
        logger.info("Publishing version")
    """

    _level = _default_level()

    # Schema deployment always logs its DDL
    LEVEL_OVERRIDES = {
        ComponentType.SCHEMA: LogLevel.DEBUG,
    }

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        level: Optional[LogLevel] = None
    ) -> logging.Logger:
        """
        Create a logger for a specific component.

        Args:
            component_type: Type of component
            name: Component name (e.g., "Publisher")
            context: Optional log context for correlation
            level: Override for the component default level

        Returns:
            Configured Python logger, wrapped in a ContextLoggerAdapter
            when a context is given
        """
        logger = logging.getLogger(f"{component_type.value}.{name}")

        if level is None:
            level = cls.LEVEL_OVERRIDES.get(component_type, cls._level)
        log_level = level.to_python_level()
        logger.setLevel(log_level)

        # Avoid duplicate handlers when create_logger runs more than once
        has_json_handler = any(
            isinstance(h.formatter, JSONFormatter) for h in logger.handlers
        )
        if not has_json_handler:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(log_level)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)

        # Propagate so pytest caplog and host log capture still see records
        logger.propagate = True

        if not hasattr(logger, '_context_wrapped'):
            original_log = logger._log

            def log_with_component(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
                """Wrapper to inject the component as custom dimensions."""
                if extra is None:
                    extra = {}

                custom_dims = {
                    'component_type': component_type.value,
                    'component_name': name,
                }
                if 'custom_dimensions' in extra:
                    custom_dims.update(extra['custom_dimensions'])

                extra['custom_dimensions'] = custom_dims

                original_log(level, msg, args, exc_info=exc_info, extra=extra,
                             stack_info=stack_info, stacklevel=stacklevel + 1)

            logger._log = log_with_component
            logger._context_wrapped = True

        if context is not None:
            return ContextLoggerAdapter(logger, context)
        return logger

    @classmethod
    def create_with_context(
        cls,
        component_type: ComponentType,
        name: str,
        version_id: Optional[str] = None,
        job_id: Optional[str] = None,
        job_type: Optional[str] = None
    ) -> logging.LoggerAdapter:
        """
        Create logger bound to a version (and optionally a job).

        Convenience method for the job runner, which logs every step of a
        job against the version it mutates. The underlying logger is shared
        per component; only the adapter carries the ids.
        """
        context = LogContext(
            version_id=version_id,
            job_id=job_id,
            job_type=job_type
        )
        return cls.create_logger(
            component_type=component_type,
            name=name,
            context=context
        )


# ============================================================================
# EXCEPTION DECORATOR
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Decorator to log exceptions with full context, then re-raise.

    Example:
        @log_exceptions(ComponentType.SERVICE, "Publisher")
        def publish(version_id):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if logger:
                log = logger
            elif component_type and component_name:
                log = LoggerFactory.create_logger(component_type, component_name)
            else:
                log = LoggerFactory.create_logger(
                    ComponentType.SERVICE,
                    func.__module__ or "unknown"
                )

            try:
                return func(*args, **kwargs)
            except Exception as e:
                log.error(
                    f"Exception in {func.__name__}",
                    exc_info=True,
                    extra={
                        'custom_dimensions': {
                            'function_name': func.__name__,
                            'function_module': func.__module__,
                            'exception_type': type(e).__name__,
                            'exception_message': str(e),
                            'function_args': str(args)[:500],
                            'function_kwargs': str(kwargs)[:500],
                            'traceback': traceback.format_exc()
                        }
                    }
                )
                raise
        return wrapper
    return decorator
