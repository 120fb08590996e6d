"""
Category Resolver

Maps a category name to its id, creating the category on first use.

Two requests can both miss the lookup for a brand-new name and both try
to insert it. The unique constraint on categories.name lets exactly one
insert through; the other gets ConflictError and is retried once, and the
retry's lookup finds the winner's row. No duplicate row, no failed request.

An existing category keeps the type it was created with, even when a
transaction of the other type reuses the name. The mismatch is audited.
"""

from typing import Optional
from uuid import UUID

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from fintrack.audit import AuditLogger
from fintrack.models.audit import AuditEventBuilder
from fintrack.models.transaction import TransactionType
from fintrack.services.storage import CategoryStorageInterface, ConflictError


logger = structlog.get_logger(__name__)


class CategoryResolver:
    """Find-or-create for categories."""

    def __init__(
        self,
        storage: CategoryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    @retry(
        retry=retry_if_exception_type(ConflictError),
        stop=stop_after_attempt(2),
        reraise=True,
    )
    async def resolve(
        self,
        name: str,
        fallback_type: TransactionType,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Return the id of the category called `name`.

        Args:
            name: Exact category name (already validated non-empty)
            fallback_type: Type to give the category if it must be created
            correlation_id: Request correlation id for audit events

        Raises:
            StorageError: If the store fails, or the conflict persists
        """
        category = await self._storage.get_category_by_name(name)

        if category is not None:
            if category.type != fallback_type and self._audit_logger:
                await self._audit_logger.log(
                    AuditEventBuilder.category_type_mismatch(
                        category_id=category.id,
                        name=name,
                        stored_type=category.type.value,
                        requested_type=fallback_type.value,
                        correlation_id=correlation_id,
                    )
                )
            return category.id

        try:
            category_id = await self._storage.create_category(name, fallback_type)
        except ConflictError:
            logger.info("category_insert_lost_race", name=name)
            raise

        if self._audit_logger:
            await self._audit_logger.log(
                AuditEventBuilder.category_created(
                    category_id=category_id,
                    name=name,
                    category_type=fallback_type.value,
                    correlation_id=correlation_id,
                )
            )
        return category_id
