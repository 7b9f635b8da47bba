# src/app/services/orphans.py
"""
Orphan cascade: resolve a departing member's in-flight proposals.

A recipe becomes orphaned when its creator leaves or is removed from the
community. Every PENDING proposal on it is auto-rejected and forked into a
variant recipe owned by the proposer, so their work is kept.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from src.app.domain.models import ORPHAN_AUTO_REJECT, AuditType, OrphanHandlingResult
from src.app.infra.db.session import SessionFactory, joined_or_new
from src.app.infra.db.sql_recipes_repo import SqlRecipeRepository
from src.app.services.audit import record_audit

logger = logging.getLogger(__name__)


class OrphanCascadeService:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def handle_departure(
        self,
        contributor_id: str,
        community_id: str,
        *,
        session: Optional[Session] = None,
    ) -> OrphanHandlingResult:
        """
        Auto-reject the pending proposals on a departing contributor's recipes.

        Args:
            contributor_id: Member leaving (or removed from) the community
            community_id: The community
            session: Transaction of the surrounding membership change; when
                given, nothing is committed here

        Returns:
            OrphanHandlingResult with the aggregate counters
        """
        result = OrphanHandlingResult()

        with joined_or_new(self._session_factory, session) as tx:
            repo = SqlRecipeRepository(tx)
            orphaned = repo.find_orphaned_recipes(contributor_id, community_id)
            result.processed_recipes = len(orphaned)
            decided_at = datetime.now(timezone.utc)

            for item in orphaned:
                for proposal in item.pending_proposals:
                    variant = repo.create_variant_from_proposal(item.recipe, proposal)
                    repo.reject_proposal(proposal, decided_at)
                    result.auto_rejected_proposals += 1
                    result.created_variants += 1

                    record_audit(
                        tx,
                        type=AuditType.VARIANT_CREATED,
                        actor_id=proposal.proposer_id,
                        target_type="Recipe",
                        target_id=variant.id,
                        metadata={
                            "proposalId": proposal.id,
                            "originRecipeId": item.recipe.id,
                            "reason": ORPHAN_AUTO_REJECT,
                        },
                        community_id=community_id,
                    )

        logger.info(
            "Orphan cascade: contributor=%s, community=%s, recipes=%d, rejected=%d, variants=%d",
            contributor_id,
            community_id,
            result.processed_recipes,
            result.auto_rejected_proposals,
            result.created_variants,
        )
        return result
