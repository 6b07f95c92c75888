"""
Terminal output for ExamGuard

ANSI-coloured log lines, per-request timing and the startup banner.
Proctoring incidents (``event=violation``) are highlighted so they are
easy to spot while an exam is running.
"""
import logging
from datetime import datetime
from typing import Optional


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BG_RED = "\033[41m"


class ColoredFormatter(logging.Formatter):
    """Short timestamp, coloured level, highlighted proctoring incidents."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BG_RED + Colors.WHITE,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        text = record.getMessage()

        if "event=violation" in text:
            text = f"{Colors.BOLD}{Colors.MAGENTA}{text}{Colors.RESET}"

        line = (
            f"{Colors.DIM}{clock}{Colors.RESET} "
            f"{color}{record.levelname:8}{Colors.RESET} "
            f"[{Colors.CYAN}{record.name}{Colors.RESET}] {text}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


api_logger = logging.getLogger("examguard.api")


def log_request(method: str, path: str, status: int, duration_ms: int):
    """One line per handled request."""
    color = Colors.GREEN if status < 400 else Colors.RED
    api_logger.info(f"{method} {path} -> {color}{status}{Colors.RESET} in {duration_ms}ms")


def log_error(error_type: str, message: str, session_id: Optional[str] = None):
    suffix = f" (session {session_id})" if session_id else ""
    api_logger.error(f"{error_type}: {message}{suffix}")


def log_startup(service_name: str, port: int, strategy: str, check_interval_ms: int):
    """Banner printed once the app has started."""
    rule = f"{Colors.BOLD}{Colors.GREEN}{'=' * 60}{Colors.RESET}"
    print(f"\n{rule}")
    print(f"{Colors.BOLD}{Colors.GREEN}  {service_name} STARTED{Colors.RESET}")
    print(rule)
    print(f"  Running on: {Colors.CYAN}http://localhost:{port}{Colors.RESET}")
    print(f"  Docs:       {Colors.CYAN}http://localhost:{port}/docs{Colors.RESET}")
    print(f"  Detection:  {Colors.CYAN}{strategy}{Colors.RESET}, checks every {check_interval_ms}ms")
    print(f"\n{Colors.DIM}Waiting for exam sessions...{Colors.RESET}\n")
