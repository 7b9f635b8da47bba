# src/app/infra/db/tables.py
"""
SQLAlchemy ORM tables for the recipe catalog.

Association tables carry a surrogate id plus a unique constraint on
(content item, entity) so a row can be re-pointed during a merge.
Foreign keys declare ON DELETE CASCADE, but services always delete
associations explicitly before deleting the entity they reference.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid4())


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all catalog tables."""
    pass


# =============================================================================
# Catalog entities
# =============================================================================


class UnitRow(Base):
    __tablename__ = "units"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    abbreviation: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Unit(id={self.id}, name='{self.name}')>"


class IngredientRow(Base):
    __tablename__ = "ingredients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="APPROVED")
    created_by_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    default_unit_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("units.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now_utc)

    def __repr__(self) -> str:
        return f"<Ingredient(id={self.id}, name='{self.name}', status={self.status})>"


class TagRow(Base):
    __tablename__ = "tags"
    # NULL community ids are distinct in SQL, so GLOBAL names need their own partial index
    __table_args__ = (
        UniqueConstraint("name", "community_id", name="uq_tag_name_community"),
        Index(
            "uq_tag_global_name",
            "name",
            unique=True,
            postgresql_where=text("community_id IS NULL"),
            sqlite_where=text("community_id IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="APPROVED")
    scope: Mapped[str] = mapped_column(String(20), nullable=False, default="GLOBAL")
    community_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    created_by_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now_utc)

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}', scope={self.scope})>"


# =============================================================================
# Content
# =============================================================================


class RecipeRow(Base):
    __tablename__ = "recipes"
    __table_args__ = (Index("ix_recipes_creator_community", "creator_id", "community_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    servings: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    prep_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cook_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rest_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    creator_id: Mapped[str] = mapped_column(String(36), nullable=False)
    community_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    is_variant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    origin_recipe_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now_utc)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    steps: Mapped[list["RecipeStepRow"]] = relationship(
        order_by="RecipeStepRow.position", cascade="all, delete-orphan"
    )


class RecipeStepRow(Base):
    __tablename__ = "recipe_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    instruction: Mapped[str] = mapped_column(Text, nullable=False)


class ProposalRow(Base):
    __tablename__ = "proposals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    proposer_id: Mapped[str] = mapped_column(String(36), nullable=False)
    proposed_title: Mapped[str] = mapped_column(String(200), nullable=False)
    proposed_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    proposed_servings: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    proposed_prep_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    proposed_cook_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    proposed_rest_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now_utc)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    steps: Mapped[list["ProposalStepRow"]] = relationship(
        order_by="ProposalStepRow.position", cascade="all, delete-orphan"
    )


class ProposalStepRow(Base):
    __tablename__ = "proposal_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    proposal_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    instruction: Mapped[str] = mapped_column(Text, nullable=False)


# =============================================================================
# Associations
# =============================================================================


class RecipeIngredientRow(Base):
    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_ingredient"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    ingredient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[Optional[float]] = mapped_column(nullable=True)
    unit_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("units.id"), nullable=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ProposalIngredientRow(Base):
    __tablename__ = "proposal_ingredients"
    __table_args__ = (
        UniqueConstraint("proposal_id", "ingredient_id", name="uq_proposal_ingredient"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    proposal_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False
    )
    ingredient_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[Optional[float]] = mapped_column(nullable=True)
    unit_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("units.id"), nullable=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class RecipeTagRow(Base):
    __tablename__ = "recipe_tags"
    __table_args__ = (UniqueConstraint("recipe_id", "tag_id", name="uq_recipe_tag"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    recipe_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    tag_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True
    )


# =============================================================================
# Audit
# =============================================================================


class AuditLogRow(Base):
    __tablename__ = "audit_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    actor_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    target_type: Mapped[str] = mapped_column(String(40), nullable=False)
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    community_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now_utc)
