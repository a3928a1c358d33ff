"""
Unified Logging Configuration for MediBrief

This module provides a centralized logging system that combines:
- Console output with timestamps (DEBUG_MODE only)
- File output to logs/debug_flow.txt (detailed trace of a run)
- File output to logs/processing.log (standard log records)
- Performance timing via the Timer context manager

All modules should import logging functions from this module:
    from medibrief.logging_config import debug_log, info, warning, error, Timer

Messages are prefixed with the component tag, e.g. "[EXTRACT]" or "[GEMINI]".
Document text and prompts carry patient data: log their lengths, never
their content.
"""

import logging
import sys
import threading
import time
from datetime import datetime

from medibrief.config import DEBUG_LOG_FILE, DEBUG_MODE, LOG_DATE_FORMAT, LOG_FILE, LOG_FORMAT

# =============================================================================
# File Logger Setup (debug_flow.txt)
# =============================================================================

class _DebugFileLogger:
    """
    Manages the debug_flow.txt file for detailed debugging output.

    This singleton writes all debug messages to a file regardless of DEBUG_MODE,
    providing an audit trail for troubleshooting.
    """

    _instance = None
    _log_file = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._initialize_log_file()
        return cls._instance

    @classmethod
    def _initialize_log_file(cls):
        """Create and initialize the debug log file."""
        try:
            cls._log_file = open(DEBUG_LOG_FILE, 'w', encoding='utf-8')
        except OSError:
            cls._log_file = None
            return
        cls._log_file.write("=== MediBrief Debug Log ===\n")
        cls._log_file.write(f"Started: {datetime.now().isoformat()}\n")
        cls._log_file.write(f"DEBUG_MODE: {DEBUG_MODE}\n")
        cls._log_file.write("=" * 60 + "\n\n")
        cls._log_file.flush()

    def write(self, message: str):
        """Write message to the debug log file."""
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        # Extraction and provider calls log from worker threads
        with self._lock:
            if self._log_file:
                self._log_file.write(f"[{timestamp}] {message}\n")
                self._log_file.flush()

    def close(self):
        """Close the debug log file gracefully."""
        with self._lock:
            if self._log_file:
                self._log_file.write(f"\n{'=' * 60}\n")
                self._log_file.write(f"Ended: {datetime.now().isoformat()}\n")
                self._log_file.close()
                self._log_file = None


_debug_file_logger = _DebugFileLogger()


# =============================================================================
# Standard Python Logging Setup
# =============================================================================

def _setup_standard_logging() -> logging.Logger:
    """
    Configure the standard Python logging framework.

    Returns:
        Configured logger instance for MediBrief
    """
    logger = logging.getLogger('MediBrief')
    logger.setLevel(logging.DEBUG if DEBUG_MODE else logging.INFO)

    # Prevent duplicate handlers if called multiple times
    if logger.handlers:
        return logger

    try:
        file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(file_handler)
    except OSError:
        # Read-only home directories still get console output below
        logger.addHandler(logging.NullHandler())

    if DEBUG_MODE:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(console_handler)

    return logger


_logger = _setup_standard_logging()


# =============================================================================
# Timer Context Manager
# =============================================================================

class Timer:
    """
    Context manager for timing code blocks with automatic logging.

    Usage:
        with Timer("PDF parsing"):
            ...

    Output (DEBUG_MODE=True):
        [12:01:33.120] Starting PDF parsing...
        [12:01:33.962] PDF parsing took 842 ms

    Attributes:
        operation_name: Name of the operation being timed
        duration_ms: Duration in milliseconds (available after exit)
    """

    def __init__(self, operation_name: str, auto_log: bool = True):
        self.operation_name = operation_name
        self.auto_log = auto_log
        self.start_time: float | None = None
        self.duration_ms: float | None = None

    def __enter__(self):
        if self.auto_log:
            debug_log(f"Starting {self.operation_name}...")
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        if self.auto_log:
            debug_timing(self.operation_name, self.duration_ms / 1000)
        return False  # Don't suppress exceptions


# =============================================================================
# Public Logging Functions
# =============================================================================

def debug_log(message: str):
    """
    Log a debug message to the debug file and, in DEBUG_MODE, the console.

    Args:
        message: The message to log (prefix with [COMPONENT] for clarity)
    """
    _debug_file_logger.write(message)
    _logger.debug(message)


def info(message: str):
    """Log an informational message."""
    _debug_file_logger.write(f"[INFO] {message}")
    _logger.info(message)


def warning(message: str):
    """Log a warning message."""
    _debug_file_logger.write(f"[WARNING] {message}")
    _logger.warning(message)


def error(message: str, exc_info: bool = False):
    """
    Log an error message with optional exception traceback.

    Args:
        message: The error message to log
        exc_info: If True, include the active exception's traceback (DEBUG_MODE only)
    """
    _debug_file_logger.write(f"[ERROR] {message}")
    _logger.error(message, exc_info=exc_info and DEBUG_MODE)


def text_stats(text: str) -> str:
    """
    Size of a text for log lines, e.g. "1532 chars, 41 lines".

    Use in place of the text itself: reports and prompts carry patient data.
    """
    if not text:
        return "0 chars"
    return f"{len(text)} chars, {len(text.splitlines())} lines"


def debug_timing(operation: str, elapsed_seconds: float):
    """
    Log operation timing information in human-readable format.

    Args:
        operation: Description of the operation that was timed
        elapsed_seconds: Elapsed time in seconds
    """
    if elapsed_seconds < 1:
        time_str = f"{elapsed_seconds * 1000:.0f} ms"
    elif elapsed_seconds < 60:
        time_str = f"{elapsed_seconds:.2f}s"
    else:
        time_str = f"{elapsed_seconds / 60:.1f}m"
    debug_log(f"{operation} took {time_str}")


def close_debug_log():
    """Close the debug log file. Call at shutdown to flush everything."""
    _debug_file_logger.close()


__all__ = [
    'debug_log',
    'debug_timing',
    'info',
    'warning',
    'error',
    'close_debug_log',
    'text_stats',
    'Timer',
    'DEBUG_MODE',
]
