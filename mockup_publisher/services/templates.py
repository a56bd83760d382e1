"""Reusable description sections owned by a shop owner."""

from __future__ import annotations

import logging
from typing import Optional

from mockup_publisher.clients.sqlite_store import SQLiteStore
from mockup_publisher.core.errors import ResourceNotFound, ValidationError
from mockup_publisher.models.listing import TemplateSection

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "section"


class TemplateService:
    """CRUD over templates with at most one default per (owner, category).

    Prior defaults are cleared before the new default is written. The two writes
    are not transactional, so concurrent updates resolve last-writer-wins.
    """

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def list_templates(self, owner: str) -> list[TemplateSection]:
        return [TemplateSection.model_validate(row) for row in self._store.list_templates(owner)]

    def list_defaults(self, owner: str) -> list[TemplateSection]:
        return [
            TemplateSection.model_validate(row)
            for row in self._store.list_default_templates(owner)
        ]

    def get(self, owner: str, template_id: int) -> TemplateSection:
        row = self._store.get_template(template_id, owner)
        if row is None:
            raise ResourceNotFound(f"Template {template_id} not found.")
        return TemplateSection.model_validate(row)

    def create(
        self,
        owner: str,
        *,
        name: str,
        content: str,
        category: Optional[str] = None,
        is_default: bool = False,
    ) -> TemplateSection:
        name = (name or "").strip()
        if not name or not content:
            raise ValidationError("Template name and content are required.")
        category = (category or DEFAULT_CATEGORY).strip() or DEFAULT_CATEGORY

        if is_default:
            self._store.clear_default_templates(owner, category)
        row = self._store.insert_template(
            owner=owner,
            name=name,
            content=content,
            category=category,
            is_default=is_default,
        )
        logger.info("Created template %s for %s", row["id"], owner)
        return TemplateSection.model_validate(row)

    def update(
        self,
        owner: str,
        template_id: int,
        *,
        name: Optional[str] = None,
        content: Optional[str] = None,
        category: Optional[str] = None,
        is_default: Optional[bool] = None,
    ) -> TemplateSection:
        existing = self.get(owner, template_id)
        if name is not None and not name.strip():
            raise ValidationError("Template name cannot be empty.")

        # Moving a default into another category also displaces that category's default.
        stays_default = is_default if is_default is not None else existing.is_default
        if stays_default:
            self._store.clear_default_templates(
                owner, category or existing.category, exclude_id=template_id
            )
        row = self._store.update_template(
            template_id,
            owner,
            name=name.strip() if name is not None else None,
            content=content,
            category=category,
            is_default=is_default,
        )
        if row is None:
            raise ResourceNotFound(f"Template {template_id} not found.")
        return TemplateSection.model_validate(row)

    def delete(self, owner: str, template_id: int) -> None:
        if not self._store.delete_template(template_id, owner):
            raise ResourceNotFound(f"Template {template_id} not found.")
        logger.info("Deleted template %s for %s", template_id, owner)


__all__ = ["TemplateService"]
