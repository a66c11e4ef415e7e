"""
Utility functions for the Merge Flow framework.

This module provides logging setup, parameter validation and the
subprocess helper shared by the git and package manager collaborators.
"""

import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence, Type

logger = logging.getLogger(__name__)

# Package-level logger name used across all modules
PACKAGE_LOGGER = "merge_flow"


def console_level(verbosity: int = 0, quiet: bool = False) -> int:
    """Map ``-v`` counts and ``--quiet`` onto a console log level."""
    if quiet:
        return logging.ERROR
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(
    *,
    verbosity: int = 0,
    log_file: Optional[str] = None,
    quiet: bool = False,
) -> logging.Logger:
    """Configure the ``merge_flow`` package logger.

    Called once by the CLI. Library modules only ever call
    ``logging.getLogger(__name__)``.

    Args:
        verbosity: 0 = WARNING, 1 = INFO (``-v``), 2+ = DEBUG (``-vv``/``--debug``).
        log_file: Optional log file; it always receives DEBUG records so a
            failed run can be diagnosed after the fact. Missing parent
            directories are created.
        quiet: Only errors on the console (``--quiet``); wins over verbosity.

    Returns:
        The configured package logger.
    """
    level = console_level(verbosity, quiet)

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    pkg_logger.setLevel(logging.DEBUG)
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    ))
    pkg_logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
        ))
        pkg_logger.addHandler(file_handler)

    pkg_logger.debug(
        "Logging configured: console=%s, file=%s",
        logging.getLevelName(level),
        log_file or "none",
    )
    return pkg_logger


def run_command(
    args: Sequence[str],
    *,
    cwd: Path,
    timeout: int,
    error_cls: Type[Exception],
    check: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run an external command and capture its output.

    Args:
        args: Command and arguments (never passed through a shell).
        cwd: Working directory for the command.
        timeout: Command timeout in seconds.
        error_cls: Exception type raised on failure.
        check: Whether to raise on non-zero exit code.

    Returns:
        CompletedProcess instance.

    Raises:
        error_cls: If the command times out, cannot be started, or exits
            non-zero while ``check`` is set.
    """
    cmd_str = " ".join(args)
    logger.debug("Running: %s (cwd=%s, timeout=%ds)", cmd_str, cwd, timeout)
    try:
        result = subprocess.run(
            list(args),
            cwd=cwd,
            capture_output=True,
            text=True,
            check=check,
            timeout=timeout,
        )
        logger.debug("exit=%d stdout=%d chars", result.returncode, len(result.stdout))
        return result
    except subprocess.TimeoutExpired as e:
        logger.error("Command timed out after %ds: %s", timeout, cmd_str)
        raise error_cls(f"Command timed out after {timeout}s: {cmd_str}") from e
    except subprocess.CalledProcessError as e:
        logger.error("Command failed (exit %d): %s: %s", e.returncode, cmd_str, (e.stderr or "").strip())
        raise error_cls(
            f"Command failed: {cmd_str}\n"
            f"Exit code: {e.returncode}\n"
            f"Error: {e.stderr}"
        ) from e
    except OSError as e:
        logger.error("Could not start command: %s: %s", cmd_str, e)
        raise error_cls(f"Could not run command '{cmd_str}': {e}") from e


def validate_positive_int(value: int, name: str) -> int:
    """
    Validate that a value is a positive integer.

    Args:
        value: Value to validate.
        name: Name of the parameter for error messages.

    Returns:
        The validated value.

    Raises:
        ValueError: If value is not a positive integer.
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")

    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")

    return value


def validate_non_negative_number(value: float, name: str) -> float:
    """
    Validate that a value is a non-negative number.

    Raises:
        ValueError: If value is negative or not a number.
    """
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"{name} cannot be negative, got {value}")

    return value


def truncate_string(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """Truncate a string to a maximum length."""
    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix
