"""CrossEntityResolver — joins ledger rows to their targets and users."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Dict, List, Optional, Sequence, Tuple

from reactionhub.application.ports.user_directory_port import UserDirectoryPort
from reactionhub.application.services.entity_registry import EntityRegistry
from reactionhub.application.services.fanout import fan_out, is_degraded
from reactionhub.domain.listing import ResolutionResult, ResolvedReaction
from reactionhub.domain.reaction import EntityKind, Reaction

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class CrossEntityResolver:
    """
    Enrich a page of reactions with one ``bulk_get`` per distinct kind.

    Round trips are bounded by the number of distinct kinds on the page
    (plus one for users), never by the number of rows. A missing target or a
    degraded store leaves ``target=None`` on the affected rows.
    """

    def __init__(
        self,
        registry: EntityRegistry,
        user_directory: Optional[UserDirectoryPort] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.registry = registry
        self.user_directory = user_directory
        self.timeout = timeout

    @staticmethod
    def partition(reactions: Sequence[Reaction]) -> Dict[EntityKind, List[str]]:
        """Distinct entity ids per kind, in first-seen order."""
        grouped: Dict[EntityKind, List[str]] = {}
        for reaction in reactions:
            ids = grouped.setdefault(reaction.entity_kind, [])
            if reaction.entity_id not in ids:
                ids.append(reaction.entity_id)
        return grouped

    async def resolve(
        self, reactions: Sequence[Reaction], *, include_users: bool = True
    ) -> ResolutionResult:
        reactions = list(reactions)
        if not reactions:
            return ResolutionResult()

        degraded: List[str] = []
        calls: List[Tuple[str, Awaitable[Any]]] = []
        for kind, ids in self.partition(reactions).items():
            if kind not in self.registry:
                logger.warning("No adapter registered for %s; targets left empty", kind.value)
                degraded.append(kind.value)
                continue
            calls.append((kind.value, self.registry.get(kind).bulk_get(ids)))

        user_source: Optional[str] = None
        if include_users and self.user_directory is not None:
            user_ids = list(dict.fromkeys(r.user_id for r in reactions))
            user_source = self.user_directory.source_name
            calls.append((user_source, self.user_directory.bulk_get(user_ids)))

        targets: Dict[str, Dict[str, Dict[str, Any]]] = {}
        users: Dict[str, Dict[str, Any]] = {}
        for source, result in await fan_out(calls, self.timeout):
            if is_degraded(result):
                degraded.append(source)
                continue
            if source == user_source:
                users = result or {}
            else:
                targets[source] = result or {}

        rows = [
            ResolvedReaction(
                reaction=reaction,
                target=targets.get(reaction.entity_kind.value, {}).get(reaction.entity_id),
                user=users.get(reaction.user_id),
            )
            for reaction in reactions
        ]
        return ResolutionResult(rows=rows, degraded=degraded)

    async def resolve_one(self, reaction: Reaction) -> Tuple[ResolvedReaction, List[str]]:
        result = await self.resolve([reaction])
        return result.rows[0], result.degraded
