"""
Simulation Logger

This module provides logging utilities for the ARQ engines and the link
emulator, with configurable verbosity levels and structured output.
"""

from typing import Optional, TextIO
from datetime import datetime
from enum import IntEnum
import os

from config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class SimulationLogger:
    """
    Logger for protocol and emulator events.

    Provides structured logging with timestamps and categories.

    Attributes:
        name: Logger name
        level: Minimum log level
        file: Optional file for logging
    """

    # Color codes for terminal output
    COLORS = {
        LogLevel.DEBUG: '\033[36m',     # Cyan
        LogLevel.INFO: '\033[32m',      # Green
        LogLevel.WARNING: '\033[33m',   # Yellow
        LogLevel.ERROR: '\033[31m',     # Red
        LogLevel.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(
        self,
        name: str = "ARQ",
        level: int = DEFAULT_LOG_LEVEL,
        log_file: Optional[str] = None,
        use_colors: bool = True,
        include_timestamp: bool = True
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            log_file: Optional file path for logging
            use_colors: Use ANSI colors in output
            include_timestamp: Include timestamps in log messages
        """
        self.name = name
        self.level = level
        self.use_colors = use_colors
        self.include_timestamp = include_timestamp

        self.file: Optional[TextIO] = None
        if log_file:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self.file = open(log_file, 'w')

        # Simulated clock, set by the emulator
        self.sim_time: Optional[float] = None

        # Message counts
        self.message_counts = {level: 0 for level in LogLevel}

    def set_sim_time(self, time: float):
        """Set current simulation time for log messages."""
        self.sim_time = time

    def set_level(self, level: int):
        """Set minimum log level."""
        self.level = level

    def _format_message(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ) -> str:
        """Format a log message."""
        parts = []

        if self.include_timestamp:
            if self.sim_time is not None:
                parts.append(f"[t={self.sim_time:10.4f}]")
            else:
                parts.append(f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}]")

        level_str = level.name.ljust(8)
        if self.use_colors:
            level_str = f"{self.COLORS[level]}{level_str}{self.RESET}"
        parts.append(level_str)

        parts.append(f"[{self.name}]")

        if category:
            parts.append(f"[{category}]")

        parts.append(message)

        return " ".join(parts)

    def _log(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ):
        """Log a message."""
        if level < self.level:
            return

        self.message_counts[level] += 1
        formatted = self._format_message(level, message, category)

        print(formatted)

        if self.file:
            # Strip color codes for file
            clean = formatted
            for color in self.COLORS.values():
                clean = clean.replace(color, '')
            clean = clean.replace(self.RESET, '')
            self.file.write(clean + '\n')
            self.file.flush()

    def debug(self, message: str, category: Optional[str] = None):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Optional[str] = None):
        """Log info message."""
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Optional[str] = None):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, category)

    def error(self, message: str, category: Optional[str] = None):
        """Log error message."""
        self._log(LogLevel.ERROR, message, category)

    def critical(self, message: str, category: Optional[str] = None):
        """Log critical message."""
        self._log(LogLevel.CRITICAL, message, category)

    # Convenience methods for protocol events
    def packet_sent(self, seqnum: int):
        """Log data packet sent event."""
        self.debug(f"Packet {seqnum} sent", "TX")

    def packet_received(self, seqnum: int, in_window: bool):
        """Log data packet received event."""
        status = "in window" if in_window else "outside window"
        self.debug(f"Packet {seqnum} received, {status}", "RX")

    def corrupted(self, role: str, packet):
        """Log a dropped corrupted packet."""
        self.debug(f"{role}: corrupted packet dropped: {packet}", "CORRUPT")

    def ack_sent(self, acknum: int):
        """Log ACK sent event."""
        self.debug(f"ACK {acknum} sent", "ACK")

    def ack_received(self, acknum: int, new: bool):
        """Log ACK received event."""
        status = "new" if new else "duplicate"
        self.debug(f"ACK {acknum} received ({status})", "ACK")

    def window_full(self, dropped: int):
        """Log a refused message."""
        self.debug(f"Window full, message dropped (total {dropped})", "WINDOW")

    def timeout(self, seqnum: int):
        """Log timeout event."""
        self.info(f"Timeout for packet {seqnum}", "TIMEOUT")

    def retransmit(self, seqnum: int):
        """Log retransmission event."""
        self.info(f"Retransmitting packet {seqnum}", "RETX")

    def delivered(self, seqnum: int):
        """Log in-order delivery to the application."""
        self.debug(f"Packet {seqnum} delivered to application", "DELIVER")

    def window_update(self, base: int, count: int, next_seq: int):
        """Log window update."""
        self.debug(f"Window: base={base}, count={count}, next={next_seq}", "WINDOW")

    def simulation_start(self, params: dict):
        """Log simulation start."""
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Simulation started: {param_str}", "SIM")

    def simulation_end(self, metrics: dict):
        """Log simulation end."""
        self.info(
            f"Simulation ended: delivered={metrics.get('messages_delivered', 0)}, "
            f"goodput={metrics.get('goodput', 0):.4f} msg/t",
            "SIM"
        )

    def get_summary(self) -> dict:
        """Get logging summary."""
        return {
            'message_counts': dict(self.message_counts),
            'total_messages': sum(self.message_counts.values())
        }

    def close(self):
        """Close log file if open."""
        if self.file:
            self.file.close()
            self.file = None

    def __del__(self):
        """Cleanup on deletion."""
        self.close()


# Global logger instance
_global_logger: Optional[SimulationLogger] = None


def get_logger() -> SimulationLogger:
    """Get global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SimulationLogger()
    return _global_logger


def set_logger(logger: SimulationLogger):
    """Set global logger instance."""
    global _global_logger
    _global_logger = logger
