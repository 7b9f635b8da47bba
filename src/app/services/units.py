# src/app/services/units.py
"""
Administration of measurement units, the attribute referenced by
ingredient associations and ingredient defaults.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.app.domain.errors import (
    DuplicateNameError,
    InUseError,
    InvalidCategoryError,
    InvalidNameError,
    NotFoundError,
)
from src.app.domain.models import AuditType, Unit, UnitCategory, normalize_name
from src.app.infra.db.session import SessionFactory, unit_of_work
from src.app.infra.db.tables import (
    IngredientRow,
    ProposalIngredientRow,
    RecipeIngredientRow,
    UnitRow,
)
from src.app.services.audit import record_audit

logger = logging.getLogger(__name__)


def _parse_category(category: Optional[str]) -> UnitCategory:
    try:
        return UnitCategory(category)
    except ValueError:
        raise InvalidCategoryError(category) from None


def _required(value: Optional[str], label: str) -> str:
    normalized = normalize_name(value)
    if not normalized:
        raise InvalidNameError(f"{label} is required")
    return normalized


def _count(session: Session, column, unit_id: str) -> int:
    return session.scalar(select(func.count()).where(column == unit_id)) or 0


def _usage(session: Session, unit_id: str) -> tuple[int, int]:
    """Return (association usage, ingredient defaults) for a unit."""
    associations = _count(session, RecipeIngredientRow.unit_id, unit_id) + _count(
        session, ProposalIngredientRow.unit_id, unit_id
    )
    return associations, _count(session, IngredientRow.default_unit_id, unit_id)


def _row_to_unit(session: Session, row: UnitRow) -> Unit:
    usage, defaults = _usage(session, row.id)
    return Unit(
        id=row.id,
        name=row.name,
        abbreviation=row.abbreviation,
        category=UnitCategory(row.category),
        sort_order=row.sort_order,
        usage_count=usage,
        default_ingredient_count=defaults,
    )


class UnitAdminService:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def _check_free(
        self,
        session: Session,
        column,
        value: str,
        field: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        stmt = select(UnitRow.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(UnitRow.id != exclude_id)
        if session.scalar(stmt) is not None:
            raise DuplicateNameError("Unit", value, field=field)

    def list_units(self) -> list[Unit]:
        with unit_of_work(self._session_factory) as session:
            rows = list(session.scalars(select(UnitRow).order_by(UnitRow.category, UnitRow.sort_order)))
            return [_row_to_unit(session, row) for row in rows]

    def create(
        self,
        actor_id: Optional[str],
        name: Optional[str],
        abbreviation: Optional[str],
        category: Optional[str],
        sort_order: int = 0,
    ) -> Unit:
        normalized_name = _required(name, "Unit name")
        normalized_abbr = _required(abbreviation, "Unit abbreviation")
        parsed_category = _parse_category(category)

        with unit_of_work(self._session_factory) as session:
            self._check_free(session, UnitRow.name, normalized_name, "name")
            self._check_free(session, UnitRow.abbreviation, normalized_abbr, "abbreviation")

            row = UnitRow(
                name=normalized_name,
                abbreviation=normalized_abbr,
                category=parsed_category.value,
                sort_order=sort_order,
            )
            session.add(row)
            session.flush()
            record_audit(
                session,
                type=AuditType.UNIT_CREATED,
                actor_id=actor_id,
                target_type="Unit",
                target_id=row.id,
                metadata={
                    "name": normalized_name,
                    "abbreviation": normalized_abbr,
                    "category": parsed_category.value,
                },
            )
            unit = _row_to_unit(session, row)

        logger.info("Unit created: id=%s, name=%s, actor=%s", unit.id, unit.name, actor_id)
        return unit

    def update(
        self,
        actor_id: Optional[str],
        unit_id: str,
        name: Optional[str] = None,
        abbreviation: Optional[str] = None,
        category: Optional[str] = None,
        sort_order: Optional[int] = None,
    ) -> Unit:
        """Update the given fields. Returns the unit unchanged if nothing differs."""
        with unit_of_work(self._session_factory) as session:
            row = session.get(UnitRow, unit_id)
            if row is None:
                raise NotFoundError("Unit", unit_id)

            changes: dict[str, Any] = {}
            metadata: dict[str, Any] = {}

            if name is not None:
                normalized = _required(name, "Unit name")
                if normalized != row.name:
                    self._check_free(session, UnitRow.name, normalized, "name", exclude_id=row.id)
                    changes["name"] = normalized
                    metadata.update({"oldName": row.name, "newName": normalized})

            if abbreviation is not None:
                normalized = _required(abbreviation, "Unit abbreviation")
                if normalized != row.abbreviation:
                    self._check_free(
                        session, UnitRow.abbreviation, normalized, "abbreviation", exclude_id=row.id
                    )
                    changes["abbreviation"] = normalized
                    metadata.update({"oldAbbreviation": row.abbreviation, "newAbbreviation": normalized})

            if category is not None:
                parsed = _parse_category(category)
                if parsed.value != row.category:
                    changes["category"] = parsed.value
                    metadata.update({"oldCategory": row.category, "newCategory": parsed.value})

            if sort_order is not None and sort_order != row.sort_order:
                changes["sort_order"] = sort_order
                metadata["sortOrder"] = sort_order

            if not changes:
                return _row_to_unit(session, row)

            for field, value in changes.items():
                setattr(row, field, value)
            session.flush()
            record_audit(
                session,
                type=AuditType.UNIT_UPDATED,
                actor_id=actor_id,
                target_type="Unit",
                target_id=row.id,
                metadata=metadata,
            )
            unit = _row_to_unit(session, row)

        logger.info("Unit updated: id=%s, fields=%s, actor=%s", unit_id, sorted(changes), actor_id)
        return unit

    def remove_if_unused(self, actor_id: Optional[str], unit_id: str) -> Unit:
        """
        Delete a unit that nothing references.

        Raises:
            NotFoundError: Unknown unit
            InUseError: Referenced by an association or as an ingredient default
        """
        with unit_of_work(self._session_factory) as session:
            row = session.get(UnitRow, unit_id)
            if row is None:
                raise NotFoundError("Unit", unit_id)

            unit = _row_to_unit(session, row)
            total = unit.usage_count + unit.default_ingredient_count
            if total > 0:
                raise InUseError("Unit", unit_id, total)

            session.delete(row)
            session.flush()
            record_audit(
                session,
                type=AuditType.UNIT_DELETED,
                actor_id=actor_id,
                target_type="Unit",
                target_id=unit_id,
                metadata={"name": unit.name, "abbreviation": unit.abbreviation},
            )

        logger.info("Unit deleted: id=%s, name=%s, actor=%s", unit_id, unit.name, actor_id)
        return unit
