import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from storefront.core.errors import StorefrontError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry(
    fn: Callable[[], Awaitable[T]],
    attempts: int = 3,
    delay: float = 0.5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Call `fn` until it succeeds, at most `attempts` times.

    The wait after failed attempt i is `delay * 2**i` seconds. Domain errors
    are not transient and are raised straight away. When every attempt fails
    the last error is raised.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    last_error: Exception | None = None
    for attempt in range(attempts):
        try:
            return await fn()
        except StorefrontError:
            raise
        except Exception as e:
            last_error = e
            logger.error(f"Attempt {attempt + 1}/{attempts} failed: {e}")
            if attempt + 1 < attempts:
                await sleep(delay * 2**attempt)

    raise last_error
