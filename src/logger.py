r"""
Centralized logging configuration for Garment Ticketing.

This module provides the logging system used by every ticketing module:
- Structured JSON logging for easy parsing and analysis
- Automatic file rotation (prevents log files from growing indefinitely)
- Configurable log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
- Automatic cleanup of old logs (retention policy)
- Both file and console output
- Context-aware logging (order_id, operator, workflow_phase)

At a busy counter, logs are the audit trail for ticketing:
- Which operator ticketed which order, and when
- Which tags were rejected and why (wrong customer rack, misread tag)
- Printer and order-status failures

Log file location: LogDirectory from config.ini, or ~/.garment_ticketing/logs
Log file format: YYYY-MM-DD.log

Example log entry (JSON format):
    {"timestamp": "2025-11-05T14:30:45.123", "level": "INFO", "tool": "garment_ticketing",
     "order_id": "ORD-1001", "operator": "Maria", "workflow_phase": "SCAN",
     "module": "scan_session", "function": "submit", "line": 142,
     "message": "Tag accepted: C1_A (1 remaining)"}
"""

# Standard library imports
import logging
import json
import os
from datetime import datetime, timedelta
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional, Dict, Any
import configparser
from contextvars import ContextVar


# Context variables for structured logging
_order_id: ContextVar[Optional[str]] = ContextVar('order_id', default=None)
_operator: ContextVar[Optional[str]] = ContextVar('operator', default=None)
_workflow_phase: ContextVar[Optional[str]] = ContextVar('workflow_phase', default=None)

TOOL_NAME = 'garment_ticketing'


class StructuredJSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Outputs log records as JSON with fields:
    - timestamp: ISO 8601 format with milliseconds
    - level: Log level
    - tool: Always "garment_ticketing"
    - order_id: Order being ticketed (if set)
    - operator: Acting operator name (if set)
    - workflow_phase: Current ticketing phase (if set)
    - module, function, line: Origin of the record
    - message: Log message
    - exc_info: Exception information (if present)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'tool': TOOL_NAME,
            'order_id': _order_id.get(),
            'operator': _operator.get(),
            'workflow_phase': _workflow_phase.get(),
            'module': record.name,
            'function': record.funcName,
            'line': record.lineno,
            'message': record.getMessage(),
        }

        if record.exc_info:
            log_data['exc_info'] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_data'):
            log_data['extra'] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False)


class AppLogger:
    """
    Centralized application logger with file rotation and cleanup.

    Logging is configured once, on the first get_logger() call, regardless of
    how many modules import the logger.

    The logging system is configured from config.ini:
        [Logging]
        LogLevel = INFO
        MaxLogSizeMB = 10
        LogRetentionDays = 30
        LogDirectory = C:/Ticketing/Logs   (optional)

    Attributes:
        _initialized: Whether logging has been configured (class-level)
    """

    _initialized: bool = False
    config_path: Path = Path('config.ini')

    @classmethod
    def get_logger(cls, name: str = 'GarmentTicketing') -> logging.Logger:
        """
        Get or create a logger, initializing logging on first use.

        Usage in modules:
            from logger import get_logger
            logger = get_logger(__name__)

        Args:
            name: Logger name, typically the module name (__name__)

        Returns:
            Configured logger instance for the specified name
        """
        if not cls._initialized:
            cls._setup_logging()
            cls._initialized = True

        return logging.getLogger(name)

    @classmethod
    def _setup_logging(cls):
        """
        Setup logging configuration from config.ini.

        Configures:
        1. Log directory and daily file path
        2. Log level (from config or default to INFO)
        3. JSON file handler with rotation
        4. Human-readable console handler
        5. Cleanup of logs older than the retention period
        """
        config = cls._load_config()

        default_dir = Path(os.path.expanduser("~")) / ".garment_ticketing" / "logs"
        log_dir = Path(config.get('Logging', 'LogDirectory', fallback=str(default_dir)))

        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # Configured directory unreachable (e.g. unmapped network drive)
            log_dir = default_dir
            log_dir.mkdir(parents=True, exist_ok=True)
            print(f"Warning: Could not access configured log directory. Using local: {log_dir}. Error: {e}")

        log_file = log_dir / f"{datetime.now():%Y-%m-%d}.log"

        log_level_str = config.get('Logging', 'LogLevel', fallback='INFO')
        log_level = getattr(logging, log_level_str.upper(), logging.INFO)

        max_log_size = config.getint('Logging', 'MaxLogSizeMB', fallback=10) * 1024 * 1024

        json_formatter = StructuredJSONFormatter()

        # Format: timestamp | module | level | function:line | message
        console_formatter = logging.Formatter(
            fmt='%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_log_size,
            backupCount=30,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(json_formatter)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(console_formatter)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        retention_days = config.getint('Logging', 'LogRetentionDays', fallback=30)
        cls._cleanup_old_logs(log_dir, retention_days)

        logger = logging.getLogger('GarmentTicketing')
        logger.info("=" * 80)
        logger.info("Garment Ticketing Started")
        logger.info(f"Log Level: {log_level_str}")
        logger.info(f"Log File: {log_file}")
        logger.info("=" * 80)

    @classmethod
    def _load_config(cls) -> configparser.ConfigParser:
        """
        Load logging configuration from config.ini.

        Returns an empty ConfigParser if the file does not exist; callers then
        use fallback defaults (INFO level, 10MB size, 30 days retention).
        """
        config = configparser.ConfigParser()

        if cls.config_path.exists():
            config.read(cls.config_path, encoding='utf-8')

        return config

    @staticmethod
    def _cleanup_old_logs(log_dir: Path, retention_days: int):
        """
        Delete log files older than the retention period.

        Args:
            log_dir: Directory containing log files
            retention_days: Number of days to keep logs.
                            0 or negative disables cleanup.
        """
        if retention_days <= 0:
            return

        cutoff_date = datetime.now() - timedelta(days=retention_days)

        try:
            for log_file in log_dir.glob("*.log*"):
                file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
                if file_mtime < cutoff_date:
                    log_file.unlink()
                    logging.getLogger('GarmentTicketing').debug(f"Deleted old log: {log_file.name}")

        except OSError as e:
            # Non-fatal: file in use or permissions
            logging.getLogger('GarmentTicketing').warning(f"Failed to cleanup old logs: {e}")


def get_logger(name: str = 'GarmentTicketing') -> logging.Logger:
    """
    Get application logger.

    Example:
        >>> from logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Printing tags")
    """
    return AppLogger.get_logger(name)


def set_order_context(order_id: Optional[str]) -> None:
    """
    Set the order being ticketed for structured logging context.

    Args:
        order_id: Order identifier or None to clear
    """
    _order_id.set(order_id)


def set_operator_context(operator: Optional[str]) -> None:
    """
    Set the acting operator for structured logging context.

    Args:
        operator: Operator display name or None to clear
    """
    _operator.set(operator)


def set_phase_context(phase: Optional[str]) -> None:
    """Set the current workflow phase (PRINT, SCAN, ...) for log records."""
    _workflow_phase.set(phase)


def clear_logging_context() -> None:
    """Clear all logging context (order_id, operator, workflow_phase)."""
    _order_id.set(None)
    _operator.set(None)
    _workflow_phase.set(None)
