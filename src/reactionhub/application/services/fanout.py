"""Timeout-bounded fan-out helpers shared by the resolver, planner and moderation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, List, Sequence, Tuple, TypeVar, Union

from reactionhub.domain.errors import PartialDegradationWarning

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def guarded_call(
    source: str, awaitable: Awaitable[T], timeout: float
) -> Union[T, PartialDegradationWarning]:
    """
    Await one adapter call under its own timeout.

    Failures never raise: they come back as a PartialDegradationWarning so that
    one slow or broken store cannot cancel or fail its siblings.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        warning = PartialDegradationWarning(source, f"timed out after {timeout:.1f}s")
    except Exception as exc:
        warning = PartialDegradationWarning(source, f"{type(exc).__name__}: {exc}")
    logger.warning("Adapter %s degraded: %s", source, warning.reason)
    return warning


async def fan_out(
    calls: Sequence[Tuple[str, Awaitable[Any]]], timeout: float
) -> List[Tuple[str, Any]]:
    """Run (source, awaitable) pairs concurrently; results keep input order."""
    if not calls:
        return []
    results = await asyncio.gather(
        *(guarded_call(source, awaitable, timeout) for source, awaitable in calls)
    )
    degraded = [source for (source, _), r in zip(calls, results) if is_degraded(r)]
    if degraded:
        logger.info(
            "Fan-out degraded: %d/%d sources failed (%s)",
            len(degraded),
            len(calls),
            ", ".join(degraded),
        )
    return [(source, result) for (source, _), result in zip(calls, results)]


def is_degraded(result: Any) -> bool:
    return isinstance(result, PartialDegradationWarning)
