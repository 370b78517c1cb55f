"""Retry and best-effort step utilities."""
import asyncio
from collections.abc import Awaitable, Callable
from logging import Logger


async def _call(
    fn: Callable[[], None] | Callable[[], Awaitable[None]],
    run_in_thread: bool,
) -> None:
    if run_in_thread:
        await asyncio.to_thread(fn)
        return
    result = fn()
    if asyncio.iscoroutine(result):
        await result


async def with_retry(
    fn: Callable[[], None] | Callable[[], Awaitable[None]],
    *,
    name: str,
    logger: Logger,
    max_retries: int = 3,
    initial_backoff_sec: float = 2.0,
    retryable_exceptions: tuple[type[Exception], ...] = (OSError,),
    run_in_thread: bool = False,
) -> bool:
    """Call `fn` until it succeeds, doubling the delay after each failure.

    Only `retryable_exceptions` are retried; any other error gives up at
    once. No delay follows the last attempt.

    Args:
        fn: Sync or async callable taking no arguments.
        name: Label used in log lines.
        logger: Where attempts and failures are reported.
        max_retries: Total number of attempts.
        initial_backoff_sec: Delay after the first failure.
        retryable_exceptions: Errors worth another attempt.
        run_in_thread: Run a blocking `fn` via asyncio.to_thread.

    Returns:
        Whether any attempt succeeded.
    """
    backoff = initial_backoff_sec
    for attempt in range(1, max_retries + 1):
        try:
            await _call(fn, run_in_thread)
        except retryable_exceptions as e:
            if attempt == max_retries:
                logger.error(
                    "%s failed after %d attempts. Last error: %s",
                    name,
                    max_retries,
                    e,
                )
                return False
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.1fs...",
                name,
                attempt,
                max_retries,
                e,
                backoff,
            )
            await asyncio.sleep(backoff)
            backoff *= 2
        except Exception as e:
            logger.error("%s failed (non-retryable): %s", name, e)
            return False
        else:
            return True
    return False


async def best_effort[T](
    step: Callable[[], Awaitable[T]],
    *,
    name: str,
    logger: Logger,
    default: T,
) -> tuple[bool, T]:
    """Run one collaborator step, logging and absorbing any failure.

    Always returns control to the caller: on failure the error is logged
    with its traceback and `default` is returned in place of the result.

    Returns:
        (ok, value) where ok is False if the step raised.
    """
    try:
        return True, await step()
    except Exception:
        logger.exception("%s failed", name)
        return False, default
