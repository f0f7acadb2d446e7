"""SearchFanoutPlanner — compiles free text into a disjunctive ledger filter."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, List, Optional, Tuple

from reactionhub.application.ports.user_directory_port import UserDirectoryPort
from reactionhub.application.services.entity_registry import EntityRegistry
from reactionhub.application.services.fanout import fan_out, is_degraded
from reactionhub.domain.listing import SearchPlan
from reactionhub.domain.reaction import parse_id_candidate

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class SearchFanoutPlanner:
    """
    Query every registered store and the user directory concurrently.

    Each store is searched under its own timeout; a failing store is listed in
    ``SearchPlan.degraded`` and contributes no matches. A store that returns
    ``search_limit`` ids or more is listed as ``<source>:truncated``. The plan
    itself never fails because of a single store.
    """

    def __init__(
        self,
        registry: EntityRegistry,
        user_directory: Optional[UserDirectoryPort] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        search_limit: Optional[int] = None,
    ):
        self.registry = registry
        self.user_directory = user_directory
        self.timeout = timeout
        self.search_limit = search_limit

    async def plan(self, query: Optional[str]) -> Optional[SearchPlan]:
        text = (query or "").strip()
        if not text:
            return None

        calls: List[Tuple[str, Awaitable[Any]]] = [
            (adapter.kind.value, adapter.search(text)) for adapter in self.registry.adapters()
        ]
        user_source: Optional[str] = None
        if self.user_directory is not None:
            user_source = self.user_directory.source_name
            calls.append((user_source, self.user_directory.search(text)))

        plan = SearchPlan(text=text, id_candidate=parse_id_candidate(text))
        kinds_by_source = {adapter.kind.value: adapter.kind for adapter in self.registry.adapters()}

        for source, result in await fan_out(calls, self.timeout):
            if is_degraded(result):
                plan.degraded.append(source)
                continue
            ids = {str(i) for i in (result or ()) if i}
            if self.search_limit and len(ids) >= self.search_limit:
                logger.warning(
                    "Search on %s hit the %d-id cap; matches may be missing",
                    source,
                    self.search_limit,
                )
                plan.degraded.append(f"{source}:truncated")
            if source == user_source:
                plan.user_ids = ids
            elif ids:
                plan.ids_by_kind[kinds_by_source[source]] = ids

        logger.info(
            "Search plan for %r: %d users, kinds=%s, degraded=%s",
            text,
            len(plan.user_ids),
            [k.value for k in plan.matched_kinds()],
            plan.degraded,
        )
        return plan
