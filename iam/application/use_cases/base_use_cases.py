# iam/application/use_cases/base_use_cases.py

"""
Base class for the entity services of the application.

This module defines the structure shared by the group, role and module
services: lookup by ID, paginated listing, name uniqueness checks,
activation toggling and statistics.
"""

from typing import Any, Dict, Generic, Optional, TypeVar
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi_pagination import Params
from fastapi_pagination.ext.sqlalchemy import apaginate

from iam.adapters.outbound.persistence.models.base_model import Base
from iam.domain.exceptions import (
    DomainException,
    ResourceNotFoundException,
    ResourceAlreadyExistsException,
    DatabaseOperationException,
)

# Configure logger
logger = logging.getLogger(__name__)

# Define generic type for use in derived classes
ModelType = TypeVar("ModelType", bound=Base)


class AsyncBaseService(Generic[ModelType]):
    """
    Base class for services, providing common operations.

    Subclasses set ``label`` (used in messages) and pass the repository of
    their entity.
    """

    label = "Entity"

    def __init__(self, db_session: AsyncSession, repository: Any):
        """
        Initialize the service with a database session and a repository.

        Args:
            db_session: Active AsyncSession
            repository: Repository of the managed entity
        """
        self.db = db_session
        self.repository = repository

    async def _get_by_id(self, entity_id: int) -> ModelType:
        """
        Fetch an entity by ID.

        Raises:
            ResourceNotFoundException: If the entity is not found
        """
        entity = await self.repository.get(self.db, id=entity_id)
        if not entity:
            error_msg = f"{self.label} with ID {entity_id} not found"
            logger.warning(error_msg)
            raise ResourceNotFoundException(detail=error_msg, resource_id=entity_id)
        return entity

    async def get(self, entity_id: int) -> ModelType:
        return await self._get_by_id(entity_id)

    async def list(self, params: Params, **filters):
        """
        Paginated list of entities ordered by ID.

        Args:
            params: Pagination parameters
            **filters: Equality filters, or ``%pattern%`` for ILIKE

        Returns:
            Page of entities
        """
        try:
            query = self.repository.list_query(**filters)
            return await apaginate(self.db, query, params)
        except Exception as e:
            logger.exception(f"Error listing {self.label.lower()}s: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error listing {self.label.lower()}s",
                original_error=e
            )

    async def _set_active(self, entity_id: int, active: bool) -> ModelType:
        """
        Activate or deactivate an entity.

        Raises:
            ResourceNotFoundException: If the entity is not found
        """
        entity = await self._get_by_id(entity_id)
        entity = await self.repository.update(self.db, db_obj=entity, obj_in={"is_active": active})

        status_text = "activated" if active else "deactivated"
        logger.info(f"{self.label} {entity_id} {status_text}")
        return entity

    async def activate(self, entity_id: int) -> ModelType:
        return await self._set_active(entity_id, True)

    async def statistics(self) -> Dict[str, int]:
        """Total, active and inactive counts."""
        total = await self.repository.count(self.db)
        active = await self.repository.count(self.db, is_active=True)
        return {"total": total, "active": active, "inactive": total - active}


class AsyncNamedEntityService(AsyncBaseService[ModelType]):
    """
    Service for entities identified by a unique ``name`` (groups, roles, modules).
    """

    async def _ensure_name_available(self, name: Optional[str], exclude_id: Optional[int] = None) -> None:
        """
        Raises:
            ResourceAlreadyExistsException: If another entity already uses the name
        """
        if name is None:
            return
        if await self.repository.exists(self.db, exclude_id=exclude_id, name=name):
            logger.warning(f"{self.label} name already in use: {name}")
            raise ResourceAlreadyExistsException(detail=f"{self.label} name already exists")

    async def create(self, data: Any) -> ModelType:
        """
        Create a new entity after checking its name is free.

        Args:
            data: Creation DTO

        Returns:
            New entity

        Raises:
            ResourceAlreadyExistsException: If the name is already used
            DatabaseOperationException: If there's an error in the process
        """
        try:
            await self._ensure_name_available(data.name)
            entity = await self.repository.create(self.db, obj_in=data)
            logger.info(f"{self.label} created: {entity.name} (ID {entity.id})")
            return entity

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Unexpected error creating {self.label.lower()}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error creating {self.label.lower()}",
                original_error=e
            )

    async def update(self, entity_id: int, data: Any) -> ModelType:
        """
        Update an entity, re-checking name uniqueness when the name changes.

        Raises:
            ResourceNotFoundException: If the entity is not found
            ResourceAlreadyExistsException: If the new name is already used
        """
        try:
            entity = await self._get_by_id(entity_id)
            update_data = data.model_dump(exclude_unset=True)

            if update_data.get("name") and update_data["name"] != entity.name:
                await self._ensure_name_available(update_data["name"], exclude_id=entity_id)

            entity = await self.repository.update(self.db, db_obj=entity, obj_in=update_data)
            logger.info(f"{self.label} updated: ID {entity_id}")
            return entity

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Unexpected error updating {self.label.lower()}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error updating {self.label.lower()}",
                original_error=e
            )
