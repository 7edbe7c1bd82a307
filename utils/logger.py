"""
Logger utility for the Resource Allocation Graph Simulator.

Provides step-by-step logging with verbosity levels.
"""

from typing import Optional, List
from datetime import datetime


class SimulatorLogger:
    """
    Logger for simulation steps and decisions.

    Format: "Step X: Granted: P1 <- 1 R2 (avail 0)"
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None):
        """
        Initialize logger.

        Args:
            verbose: Enable verbose output
            log_file: Optional file path for logging
        """
        self.verbose = verbose
        self.log_file = log_file
        self.file_handle = None

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Simulation Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        print(formatted)

        if self.file_handle:
            self.file_handle.write(formatted + "\n")
            self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_step(self, step: int, message: str) -> None:
        """Log a simulation step message."""
        self.log(f"Step {step}: {message}")

    def log_lines(self, step: int, lines: List[str]) -> None:
        """Log simulation log lines written during a step."""
        for line in lines:
            level = "warning" if line.startswith("Warning:") else "info"
            self.log(f"Step {step}: {line}", level)

    def log_deadlock(self, step: int, report) -> None:
        """
        Log deadlock detection.

        Args:
            step: Current simulation step
            report: DeadlockReport with at least one cycle
        """
        message = f"DEADLOCK DETECTED - cycles: {report.describe()}"
        self.log_step(step, message)

    def log_system_state(self, step: int, state_str: str) -> None:
        """
        Log system state snapshot.

        Args:
            step: Current simulation step
            state_str: Formatted system state
        """
        if self.verbose:
            self.log_step(step, f"System State:\n{state_str}")

    def close(self) -> None:
        """Close log file if open."""
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()
