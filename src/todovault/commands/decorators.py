"""Decorators for command functions."""

import asyncio
import functools
import inspect
import time
import traceback
from collections.abc import Callable

import typer
from pydantic import ValidationError

from todovault.models.exceptions import (
    KeyProvisioningError,
    KeyStoreCorruptedError,
    NotFoundError,
    StoreOpenError,
)
from todovault.utils.exit_codes import (
    ERROR_GENERAL,
    ERROR_INVALID_ARGS,
    ERROR_NOT_FOUND,
    ERROR_VAULT,
    get_exit_code_name,
)
from todovault.utils.logger import get_logger
from todovault.utils.ui.formatters import format_error

_VAULT_ERRORS = (KeyProvisioningError, KeyStoreCorruptedError, StoreOpenError)


class AppError(Exception):
    """Custom application error with exit code."""

    def __init__(self, message: str, exit_code: int = ERROR_GENERAL):
        super().__init__(message)
        self.exit_code = exit_code


def _exit_code_for(error: Exception) -> int:
    if isinstance(error, AppError):
        return error.exit_code
    if isinstance(error, NotFoundError):
        return ERROR_NOT_FOUND
    if isinstance(error, _VAULT_ERRORS):
        return ERROR_VAULT
    if isinstance(error, ValidationError):
        return ERROR_INVALID_ARGS
    return ERROR_GENERAL


def command_wrapper(func: Callable):
    """Run a (possibly async) command with logging and error-to-exit-code mapping."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger()
        cmd = func.__name__
        start = time.monotonic()
        logger.info("command started: %s", cmd)
        try:
            if inspect.iscoroutinefunction(func):
                result = asyncio.run(func(*args, **kwargs))
            else:
                result = func(*args, **kwargs)

            elapsed = time.monotonic() - start
            logger.info("command completed: %s (%.3fs)", cmd, elapsed)
            return result

        except typer.Exit:
            # Re-raise Typer's own exits (like --help or explicit Exit(0))
            raise

        except (AppError, NotFoundError, ValidationError, *_VAULT_ERRORS) as e:
            elapsed = time.monotonic() - start
            code = _exit_code_for(e)
            logger.error(
                "command failed: %s (%.3fs) [%s] - %s",
                cmd,
                elapsed,
                get_exit_code_name(code),
                str(e),
            )
            format_error(str(e))
            raise typer.Exit(code=code) from e

        except Exception as e:
            elapsed = time.monotonic() - start
            logger.error(
                "command failed: %s (%.3fs) [%s] - %s\n%s",
                cmd,
                elapsed,
                get_exit_code_name(ERROR_GENERAL),
                str(e),
                traceback.format_exc(),
            )
            # Generic fallback for unexpected crashes
            format_error(f"An unexpected error occurred: {str(e)}")
            raise typer.Exit(code=ERROR_GENERAL) from e

    return wrapper
