"""
Avatales Logging System

Clean terminal output for key domain activity + detailed file logging for debugging.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Any, Dict
import json

from src.config.settings import Settings


class PlatformLogger:
    """
    Two-mode logging system:
    - Terminal: Clean, timestamped commands and domain events
    - Debug file: Full detailed logs for troubleshooting
    - Event log: every dispatched domain event as JSONL (debug_domain_events)
    """

    def __init__(self, debug_mode: bool = False, settings: Optional[Settings] = None,
                 terminal_output: bool = True):
        self.debug_mode = debug_mode
        self.settings = settings
        self.terminal_output = terminal_output
        self.events_log: Optional[Path] = None

        if settings and settings.debug_domain_events:
            debug_log_dir = Path(settings.debug_log_dir)
            debug_log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.events_log = debug_log_dir / f"domain_events_{timestamp}.jsonl"

        # Setup file logger for debug mode
        if debug_mode:
            log_dir = Path(settings.debug_log_dir) if settings else Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = log_dir / f"avatales_debug_{timestamp}.txt"

            self.file_logger = logging.getLogger("avatales_debug")
            self.file_logger.setLevel(logging.DEBUG)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.file_logger.addHandler(file_handler)

            self._terminal_log("📝", f"Debug mode enabled. Logging to: {log_file}")

    def _timestamp(self) -> str:
        """Get formatted timestamp"""
        return datetime.now().strftime("%H:%M:%S")

    def _terminal_log(self, emoji: str, message: str, color: str = ""):
        """Print clean log to terminal"""
        if not self.terminal_output:
            return

        colors = {
            "green": "\033[92m",
            "yellow": "\033[93m",
            "red": "\033[91m",
            "cyan": "\033[96m",
            "reset": "\033[0m"
        }

        color_code = colors.get(color, "")
        reset = colors["reset"] if color_code else ""

        print(f"{color_code}[{self._timestamp()}] {emoji} {message}{reset}")

    def _debug_log(self, level: str, component: str, message: str, data: Optional[dict] = None):
        """Write detailed log to debug file"""
        if self.debug_mode and hasattr(self, 'file_logger'):
            log_msg = f"{component} | {message}"
            if data:
                log_msg += f" | Data: {data}"

            log_func = getattr(self.file_logger, level.lower(), self.file_logger.info)
            log_func(log_msg)

    # ===== Terminal Output Methods =====

    def command_received(self, command: str, aggregate_id: str = "", details: str = ""):
        """Log when an application command starts"""
        msg = f"Command: {command}"
        if aggregate_id:
            msg += f" ({aggregate_id})"
        if details:
            msg += f" - {details}"
        self._terminal_log("📨", msg, "cyan")
        self._debug_log("info", "COMMAND", f"Received {command}", {
            "aggregate_id": aggregate_id,
            "details": details
        })

    def command_completed(self, command: str, aggregate_id: str, event_count: int = 0):
        """Log when a command has been applied and saved"""
        msg = f"Completed: {command} ({aggregate_id})"
        if event_count:
            msg += f" - {event_count} event(s)"
        self._terminal_log("✅", msg, "green")
        self._debug_log("info", "COMMAND", f"Completed {command}", {
            "aggregate_id": aggregate_id,
            "event_count": event_count
        })

    def command_rejected(self, command: str, aggregate_id: str, error: Exception):
        """Log when a domain rule rejects a command"""
        msg = f"Rejected: {command} ({aggregate_id}) - {error}"
        self._terminal_log("⛔", msg, "yellow")
        self._debug_log("warning", "COMMAND", f"Rejected {command}", {
            "aggregate_id": aggregate_id,
            "error_type": type(error).__name__,
            "error_message": str(error)
        })

    def event_dispatched(self, event_type: str, aggregate_id: str, data: Dict[str, Any]):
        """Log when a domain event is dispatched"""
        self._terminal_log("📡", f"Event: {event_type} ({aggregate_id})", "yellow")
        self._debug_log("info", "EVENT", f"Dispatched {event_type}", {
            "aggregate_id": aggregate_id,
            "event_data": data
        })
        if self.events_log is not None:
            self._write_json_log(self.events_log, data)

    def error(self, component: str, message: str, error: Exception = None):
        """Log error"""
        msg = f"Error in {component}: {message}"
        if error:
            msg += f" ({type(error).__name__})"
        self._terminal_log("⚠️", msg, "red")
        self._debug_log("error", component, message, {
            "error_type": type(error).__name__ if error else None,
            "error_message": str(error) if error else None
        })

    def info(self, message: str):
        """Log general info"""
        self._terminal_log("ℹ️", message)
        self._debug_log("info", "SYSTEM", message)

    def warning(self, message: str):
        """Log warning"""
        self._terminal_log("⚠️", message, "yellow")
        self._debug_log("warning", "SYSTEM", message)

    def debug(self, component: str, message: str, data: Optional[dict] = None):
        """Log debug information (file only)"""
        if self.debug_mode:
            self._debug_log("debug", component, message, data)

    def _write_json_log(self, log_file: Path, data: Dict[str, Any]):
        """Write structured JSON log entry"""
        try:
            with open(log_file, 'a') as f:
                json.dump(data, f)
                f.write('\n')
        except OSError as e:
            self.error("LOGGER", f"Failed to write JSON log: {e}")


# Global logger instance
_logger: Optional[PlatformLogger] = None


def get_logger(settings: Optional[Settings] = None) -> PlatformLogger:
    """Get global logger instance"""
    global _logger
    if _logger is None:
        debug_mode = settings.debug_mode if settings else False
        _logger = PlatformLogger(debug_mode=debug_mode, settings=settings)
    return _logger


def init_logger(debug_mode: bool = False, settings: Optional[Settings] = None,
                terminal_output: bool = True) -> PlatformLogger:
    """Initialize logger with specific debug mode and settings"""
    global _logger
    _logger = PlatformLogger(debug_mode=debug_mode, settings=settings, terminal_output=terminal_output)
    return _logger


def reset_logger():
    """Reset the singleton (useful for testing)."""
    global _logger
    _logger = None
