#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
Logging System for APK Patch

Features:
- Level-specific console templates with optional colours
- Optional structured JSON output (APKPATCH_LOG_JSON=1)
- Rotating main log plus a warnings-and-above error log
- Per-run capture files for external tool output
- Timing of slow pipeline steps
"""

import logging
import logging.handlers
import os
import sys
import time
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, Union

# =====================================================================================================
# Constants
# =====================================================================================================

DEFAULT_MAX_LOG_SIZE = "10MB"
SLOW_OPERATION_SECONDS = 1.0
ROOT_LOGGER_NAME = "apkpatch"

# =====================================================================================================
# Formatters
# =====================================================================================================

class FastFormatter(logging.Formatter):
    """Formatter with one pre-built template per level."""

    def __init__(self, enable_colors: bool = False):
        super().__init__()
        self.enable_colors = enable_colors

        templates = {
            logging.ERROR: "[{asctime}] ERROR   [{name}] {message}",
            logging.WARNING: "[{asctime}] WARNING [{name}] {message}",
            logging.INFO: "[{asctime}] INFO    {message}",
            logging.DEBUG: "[{asctime}] DEBUG   {name}:{lineno} - {message}"
        }
        self._formatters = {
            level: logging.Formatter(fmt, style='{', datefmt='%H:%M:%S')
            for level, fmt in templates.items()
        }

        self.colors = {
            logging.ERROR: '\033[91m',     # Red
            logging.WARNING: '\033[93m',   # Yellow
            logging.INFO: '\033[92m',      # Green
            logging.DEBUG: '\033[94m',     # Blue
        } if enable_colors else {}
        self.reset = '\033[0m'

    def format(self, record):
        level = record.levelno
        if level >= logging.ERROR:
            formatter = self._formatters[logging.ERROR]
            key = logging.ERROR
        elif level in self._formatters:
            formatter = self._formatters[level]
            key = level
        else:
            formatter = self._formatters[logging.INFO]
            key = logging.INFO

        text = formatter.format(record)
        color = self.colors.get(key)
        if color:
            return f"{color}{text}{self.reset}"
        return text


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter (optional)."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "thread": record.threadName,
            "process": record.process,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

# =====================================================================================================
# Main Setup Function
# =====================================================================================================

def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = None,
    enable_file_logging: bool = False,
    enable_console_logging: bool = True,
    max_log_size: str = DEFAULT_MAX_LOG_SIZE,
    backup_count: int = 3,
    structured_json: Optional[bool] = None
) -> Dict[str, Any]:
    """Configure the root logger once at startup and return the installed handlers."""

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    log_dir_path = Path(log_dir) if log_dir is not None else Path("logs")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

# Clear Existing Handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    handlers = {}
    use_json = structured_json if structured_json is not None else _env_bool("APKPATCH_LOG_JSON")

    if enable_console_logging:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)

        enable_colors = (hasattr(sys.stdout, 'isatty') and
                         sys.stdout.isatty() and
                         os.environ.get('TERM') != 'dumb')

        console_handler.setFormatter(JsonFormatter() if use_json else FastFormatter(enable_colors=enable_colors))
        root_logger.addHandler(console_handler)
        handlers['console'] = console_handler

    if enable_file_logging:
        log_dir_path.mkdir(parents=True, exist_ok=True)
        size_bytes = _parse_size_string(max_log_size)

        main_handler = logging.handlers.RotatingFileHandler(
            str(log_dir_path / "apkpatch.log"),
            maxBytes=size_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        main_handler.setLevel(numeric_level)
        main_handler.setFormatter(JsonFormatter() if use_json else FastFormatter())
        root_logger.addHandler(main_handler)
        handlers['main_file'] = main_handler

        error_handler = logging.handlers.RotatingFileHandler(
            str(log_dir_path / "errors.log"),
            maxBytes=size_bytes // 2,
            backupCount=backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.WARNING)
        error_handler.setFormatter(JsonFormatter() if use_json else FastFormatter())
        root_logger.addHandler(error_handler)
        handlers['error_file'] = error_handler

    main_logger = logging.getLogger(ROOT_LOGGER_NAME)
    main_logger.debug("Logging initialized: level=%s file=%s json=%s", log_level, enable_file_logging, use_json)

    return {
        'handlers': handlers,
        'log_dir': log_dir_path
    }

# =====================================================================================================
# Utility functions
# =====================================================================================================

def _parse_size_string(size_str: str) -> int:
    """Parse size string into bytes."""
    size_str = size_str.upper().strip()

    multipliers = (
        ('GB', 1024 ** 3),
        ('MB', 1024 ** 2),
        ('KB', 1024),
        ('B', 1),
    )

    for suffix, multiplier in multipliers:
        if size_str.endswith(suffix):
            try:
                return int(float(size_str[:-len(suffix)].strip()) * multiplier)
            except ValueError:
                continue

    try:
        return int(float(size_str))
    except ValueError:
        return 10 * 1024 * 1024


def log_process_output(log_dir: Union[str, Path], process_name: str, output: str) -> Optional[Path]:
    """Persist the captured output of one external tool run."""
    directory = Path(log_dir)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    target = directory / f"{process_name}_{stamp}.log"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        target.write_text(output, encoding="utf-8")
    except OSError as exc:
        logging.getLogger(__name__).warning("Could not write %s output log: %s", process_name, exc)
        return None
    return target


def cleanup_logging():
    """Close and detach all root handlers."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()


class LoggingTimer:
    """Timing context manager; slow operations are logged as warnings."""

    def __init__(self, operation_name: str, threshold: float = SLOW_OPERATION_SECONDS):
        self.operation_name = operation_name
        self.threshold = threshold
        self.start_time = None
        self.duration = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.duration = time.perf_counter() - self.start_time
            timing_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.performance")
            if self.duration > self.threshold:
                timing_logger.warning(f"SLOW: {self.operation_name} took {self.duration:.2f}s")
            else:
                timing_logger.debug(f"{self.operation_name} took {self.duration:.3f}s")
