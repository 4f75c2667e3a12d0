#!/usr/bin/env python3
"""
CNA Reports Configuration & Logging Module
==========================================
Centralized configuration, structured logging, and the error hierarchy
shared by the item statistics and report export code.

Version: 1.0.0
"""

import os
import sys
import json
import logging
import uuid
import time
import functools
import threading
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable
from pathlib import Path
from dataclasses import dataclass, field
from contextlib import contextmanager

# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================
DEFAULT_ORG_NAME = "Public Service Department"
DEFAULT_MAX_UPLOAD_MB = 20          # Largest accepted JSON body in megabytes
MAX_SAFE_UPLOAD_MB = 200            # Upper bound accepted by validate()
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024  # 5MB max per log file
LOG_BACKUP_COUNT = 5                # Number of log backup files to keep

DEFAULT_MAX_UPLOAD_BYTES = DEFAULT_MAX_UPLOAD_MB * 1024 * 1024
MAX_SAFE_UPLOAD_BYTES = MAX_SAFE_UPLOAD_MB * 1024 * 1024

__version__ = '1.0.0'
VERSION = __version__
APP_NAME = "CNA Reports"


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == 'true'


# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================

@dataclass
class AppConfig:
    """Application configuration with safe defaults."""

    # Server settings
    host: str = "127.0.0.1"
    port: int = 5060
    debug: bool = False
    max_content_length: int = DEFAULT_MAX_UPLOAD_BYTES

    # Report branding
    org_name: str = DEFAULT_ORG_NAME

    # Paths
    base_dir: Path = field(default_factory=lambda: Path(__file__).parent)
    log_dir: Path = field(default_factory=lambda: Path(__file__).parent / 'logs')

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # Options: json, text
    log_to_file: bool = False
    log_to_console: bool = True

    def __post_init__(self):
        if self.log_to_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        # Force debug=False in production environment
        if os.environ.get('CNA_ENV', 'development').lower() == 'production':
            self.debug = False

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Load configuration from environment variables."""
        log_dir = os.environ.get('CNA_LOG_DIR')
        kwargs = {}
        if log_dir:
            kwargs['log_dir'] = Path(log_dir)
        return cls(
            host=os.environ.get('CNA_HOST', '127.0.0.1'),
            port=int(os.environ.get('CNA_PORT', '5060')),
            debug=_env_flag('CNA_DEBUG', 'false'),
            max_content_length=int(os.environ.get('CNA_MAX_UPLOAD', str(DEFAULT_MAX_UPLOAD_BYTES))),
            org_name=os.environ.get('CNA_ORG_NAME', DEFAULT_ORG_NAME),
            log_level=os.environ.get('CNA_LOG_LEVEL', 'INFO'),
            log_format=os.environ.get('CNA_LOG_FORMAT', 'json'),
            log_to_file=_env_flag('CNA_LOG_TO_FILE', 'false'),
            **kwargs
        )

    def validate(self) -> tuple:
        """Validate configuration and return (is_valid, errors)."""
        errors = []

        if self.debug and os.environ.get('CNA_ENV') == 'production':
            errors.append("Debug mode cannot be enabled in production")

        if self.max_content_length > MAX_SAFE_UPLOAD_BYTES:
            errors.append(f"Max content length exceeds safe limit ({MAX_SAFE_UPLOAD_MB}MB)")

        if self.log_format not in ('json', 'text'):
            errors.append(f"Invalid log_format: {self.log_format}. Must be 'json' or 'text'")

        if not hasattr(logging, self.log_level.upper()):
            errors.append(f"Invalid log_level: {self.log_level}")

        if not self.org_name.strip():
            errors.append("org_name must not be empty")

        return (len(errors) == 0, errors)


# Global config instance
_config: Optional[AppConfig] = None

def get_config() -> AppConfig:
    """Get or create the global configuration."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config():
    """Reset the global configuration (for testing)."""
    global _config
    _config = None


# =============================================================================
# STRUCTURED LOGGING
# =============================================================================

class StructuredLogger:
    """Thread-safe structured JSON logger with correlation IDs."""

    _local = threading.local()

    def __init__(self, name: str, config: Optional[AppConfig] = None):
        self.name = name
        self.config = config or get_config()
        self._setup_logger()

    def _setup_logger(self):
        """Configure the underlying Python logger."""
        self.logger = logging.getLogger(self.name)
        self.logger.setLevel(getattr(logging, self.config.log_level.upper(), logging.INFO))
        self.logger.handlers.clear()

        if self.config.log_format == 'json':
            formatter = JsonFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s [%(levelname)s] %(name)s - %(message)s'
            )

        if self.config.log_to_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if self.config.log_to_file:
            from logging.handlers import RotatingFileHandler
            log_file = self.config.log_dir / f"{self.name.lower()}.log"
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    @classmethod
    def set_correlation_id(cls, correlation_id: str):
        """Set correlation ID for current thread."""
        cls._local.correlation_id = correlation_id

    @classmethod
    def get_correlation_id(cls) -> str:
        """Get correlation ID for current thread."""
        return getattr(cls._local, 'correlation_id', None) or str(uuid.uuid4())[:8]

    @classmethod
    def new_correlation_id(cls) -> str:
        """Generate and set a new correlation ID."""
        correlation_id = str(uuid.uuid4())[:12]
        cls.set_correlation_id(correlation_id)
        return correlation_id

    def _build_log_record(self, level: str, message: str, **kwargs) -> Dict[str, Any]:
        return {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': level,
            'logger': self.name,
            'correlation_id': self.get_correlation_id(),
            'message': message,
            **kwargs
        }

    def _render(self, level: str, message: str, **kwargs) -> str:
        if self.config.log_format == 'json':
            return json.dumps(self._build_log_record(level, message, **kwargs), default=str)
        return message

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self.logger.debug(self._render('DEBUG', message, **kwargs))

    def info(self, message: str, **kwargs):
        """Log info message."""
        self.logger.info(self._render('INFO', message, **kwargs))

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self.logger.warning(self._render('WARNING', message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs):
        """Log error message with optional exception info."""
        if exc_info and self.config.log_format == 'json':
            import traceback
            kwargs['traceback'] = traceback.format_exc()
            exc_info = False
        self.logger.error(self._render('ERROR', message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs):
        """Log exception with full traceback."""
        self.error(message, exc_info=True, **kwargs)

    @contextmanager
    def log_operation(self, operation: str, **context):
        """Context manager for logging operation start/end with timing."""
        start_time = time.time()
        self.info(f"{operation} started", operation=operation, status='started', **context)
        try:
            yield
            duration_ms = (time.time() - start_time) * 1000
            self.info(f"{operation} completed", operation=operation, status='completed',
                      duration_ms=round(duration_ms, 2), **context)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self.error(f"{operation} failed: {e}", operation=operation, status='failed',
                       duration_ms=round(duration_ms, 2), **context)
            raise


class JsonFormatter(logging.Formatter):
    """JSON log formatter.

    Messages produced by StructuredLogger are already JSON documents and pass
    through untouched; records from third-party loggers are wrapped.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if message.startswith('{') and not record.exc_info:
            return message

        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': message,
        }
        if record.exc_info:
            log_data['traceback'] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name, get_config())


# =============================================================================
# ERROR HANDLING
# =============================================================================

class CnaReportError(Exception):
    """Base exception for CNA Reports."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR",
                 status_code: int = 500, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API response dict."""
        return {
            'success': False,
            'error': {
                'code': self.code,
                'message': self.message,
                'details': self.details
            }
        }


class ValidationError(CnaReportError):
    """Malformed input payload."""
    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400,
                         details={'field': field, **kwargs})


class InvalidArgumentError(ValidationError):
    """A caller passed an argument outside the operation's contract."""
    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, field=field, **kwargs)
        self.code = "INVALID_ARGUMENT"


class DataNotReadyError(CnaReportError):
    """An export was requested before its report document existed."""
    def __init__(self, message: str = "Report data is not ready yet. Please wait for it to load.",
                 **kwargs):
        super().__init__(message, code="DATA_NOT_READY", status_code=409, details=kwargs)


class NoTabularDataError(CnaReportError):
    """A table-only export was requested for a document without tables."""
    def __init__(self, message: str = "No table data found to export.", **kwargs):
        super().__init__(message, code="NO_TABULAR_DATA", status_code=422, details=kwargs)


class RendererUnavailableError(CnaReportError):
    """A third-party rendering library could not be loaded."""
    def __init__(self, renderer: str, package: str, **kwargs):
        super().__init__(
            f"{renderer} export functionality is not available. "
            f"Install with: pip install {package}",
            code="RENDERER_UNAVAILABLE", status_code=503,
            details={'renderer': renderer, 'package': package, **kwargs})


class ClipboardUnavailableError(CnaReportError):
    """The clipboard could not be written in the current runtime."""
    def __init__(self, message: str = "Clipboard is not available in this environment.", **kwargs):
        super().__init__(message, code="CLIPBOARD_UNAVAILABLE", status_code=503, details=kwargs)


class RenderItemFailure(CnaReportError):
    """A single content block could not be rendered; callers substitute a placeholder."""
    def __init__(self, message: str, block_type: str = "image", **kwargs):
        super().__init__(message, code="RENDER_ITEM_FAILURE", status_code=500,
                         details={'block_type': block_type, **kwargs})


def handle_errors(logger: Optional[StructuredLogger] = None):
    """Decorator that converts stray ValueError/TypeError into ValidationError."""
    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except CnaReportError:
                raise
            except (ValueError, TypeError, KeyError) as e:
                _logger = logger or get_logger(func.__module__)
                _logger.warning(f"Invalid input to {func.__name__}: {e}")
                raise ValidationError(str(e))
        return wrapper
    return decorator
