"""
Error handling and logging utilities for the rental scraper
"""

import asyncio
import logging
import sys
import traceback
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeout

from rental_scraper import config


CAR_NAME_HINT = "Check car name on Yango Drive website"
CANCELLED_MESSAGE = "Scraping cancelled by user"


class ScrapeCancelled(Exception):
    """Raised when the user asked to stop the current scrape run."""

    def __init__(self, message: str = CANCELLED_MESSAGE):
        super().__init__(message)


class ErrorHandler:
    """Centralized error handling and logging"""

    def __init__(self, output_folder: str = config.OUTPUT_FOLDER, logger_name: str = "RentalScraper"):
        """Initialize error handler"""
        self.output_folder = Path(output_folder)
        self.output_folder.mkdir(parents=True, exist_ok=True)
        self.log_file = self.output_folder / config.LOG_FILENAME
        self.screenshot_folder = self.output_folder / "screenshots"
        self.screenshot_folder.mkdir(exist_ok=True)
        self._setup_logger(logger_name)

    def _setup_logger(self, logger_name: str):
        """Setup logging configuration"""
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(logging.INFO)

        # One file handler per log file, so several handlers can share the logger
        log_path = str(self.log_file.resolve())
        if any(getattr(h, "baseFilename", None) == log_path for h in self.logger.handlers):
            return

        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        self.logger.addHandler(file_handler)

        if not any(type(h) is logging.StreamHandler for h in self.logger.handlers):
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.WARNING)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

    def log_info(self, message: str):
        self.logger.info(message)

    def log_warning(self, message: str):
        self.logger.warning(message)

    def log_error(self, error_type: str, message: str, exception: Optional[BaseException] = None) -> str:
        """Log error with full traceback"""
        error_msg = f"[{error_type}] {message}"

        if exception:
            error_msg += f"\nException: {str(exception)}"
            tb = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
            error_msg += f"\nTraceback:\n{tb}"

        self.logger.error(error_msg)
        return error_msg

    async def capture_screenshot(self, page, error_type: str = "ERROR") -> Optional[str]:
        """Capture screenshot with timestamp"""
        if page is None or not getattr(config, 'SCREENSHOT_ON_ERROR', False):
            return None
        try:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filepath = self.screenshot_folder / f"error_{error_type}_{timestamp}.png"
            await page.screenshot(path=str(filepath), full_page=True)
            self.log_info(f"Screenshot saved: {filepath}")
            return str(filepath)
        except Exception as e:
            self.log_error("SCREENSHOT_ERROR", f"Failed to capture screenshot: {str(e)}")
            return None

    async def handle_playwright_error(self, page, error: Exception, context: str = "") -> dict:
        """Handle Playwright-specific errors"""
        error_type = type(error).__name__
        message = f"Playwright error in {context}: {str(error)}"

        self.log_error("PLAYWRIGHT_ERROR", message)
        await self.capture_screenshot(page, error_type)

        return {
            'error_type': error_type,
            'message': message,
            'context': context,
            'timestamp': datetime.now().isoformat()
        }

    def handle_file_error(self, error: Exception, filepath: str, operation: str = "read") -> dict:
        """Handle file I/O errors"""
        error_type = type(error).__name__
        message = f"File {operation} error for {filepath}: {str(error)}"

        self.log_error("FILE_ERROR", message, error)

        return {
            'error_type': error_type,
            'message': message,
            'filepath': filepath,
            'operation': operation,
            'timestamp': datetime.now().isoformat()
        }


def is_timeout(error: BaseException) -> bool:
    if isinstance(error, (PlaywrightTimeout, asyncio.TimeoutError)):
        return True
    return "timeout" in str(error).lower()


def classify_error(error: BaseException) -> str:
    """Map an exception to the message shown to the user"""
    if isinstance(error, ScrapeCancelled):
        return CANCELLED_MESSAGE
    if is_timeout(error):
        return CAR_NAME_HINT
    return str(error) or type(error).__name__


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry settings for a single browser step.

    Args:
        max_attempts: Total attempts, first one included
        backoff: Delay in seconds between attempts
        timeout_ms: Timeout handed to each Playwright call of the step
        sleep: Coroutine used to wait, swapped for a no-op in tests
    """
    max_attempts: int = config.EXTRACT_ATTEMPTS
    backoff: float = config.EXTRACT_RETRY_DELAY
    timeout_ms: int = config.CARD_WAIT_TIMEOUT
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep


async def retry_async(
    policy: RetryPolicy,
    operation: Callable[[], Awaitable[Any]],
    exceptions: tuple = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None,
) -> Any:
    """Await operation until it succeeds or the policy runs out of attempts"""
    attempts = max(1, policy.max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ScrapeCancelled:
            raise
        except exceptions as e:
            if attempt >= attempts:
                raise
            if on_retry:
                on_retry(attempt, e)
            await policy.sleep(policy.backoff)


def async_retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,),
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
):
    """
    Decorator for retrying coroutines with exponential backoff

    Args:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds
        backoff_factor: Multiplier for delay after each retry
        exceptions: Tuple of exceptions to catch and retry on
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            delay = initial_delay
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        raise
                    logging.getLogger("RentalScraper").warning(
                        f"Attempt {attempt + 1}/{max_retries + 1} of {func.__name__} failed: {str(e)}. "
                        f"Retrying in {delay:.2f} seconds..."
                    )
                    await sleep(delay)
                    delay *= backoff_factor

        return wrapper
    return decorator
