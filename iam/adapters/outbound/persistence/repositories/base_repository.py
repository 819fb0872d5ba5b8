# iam/adapters/outbound/persistence/repositories/base_repository.py

from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar, Union
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
import logging

from iam.adapters.outbound.persistence.models.base_model import Base
from iam.domain.exceptions import (
    ResourceNotFoundException,
    ResourceAlreadyExistsException,
    DatabaseOperationException
)

# Define generic type for SQLAlchemy models
ModelType = TypeVar("ModelType", bound=Base)
# Define generic types for Pydantic DTOs
CreateSchemaType = TypeVar("CreateSchemaType")
UpdateSchemaType = TypeVar("UpdateSchemaType")

# Configure logger
logger = logging.getLogger(__name__)


def is_unique_violation(error: IntegrityError) -> bool:
    """True if the integrity error comes from a unique/primary key constraint."""
    error_msg = str(error).lower()
    return 'unique' in error_msg or 'duplicate' in error_msg


class AsyncCRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Async base class for implementing the Repository pattern.

    Provides generic CRUD operations that can be used by any entity.
    Includes consistent error handling and logging.

    Attributes:
        model: SQLAlchemy model class
        logger: Configured logger for the class
    """

    def __init__(self, model: Type[ModelType]):
        """
        Initialize the repository with an SQLAlchemy model.

        Args:
            model: SQLAlchemy model class associated with this repository
        """
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """
        Get an entity by ID.

        Args:
            db: Async database session
            id: ID of the entity

        Returns:
            Entity found or None if it doesn't exist
        """
        try:
            query = select(self.model).where(self.model.id == id)
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching {self.model.__name__} with ID {id}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error fetching {self.model.__name__}",
                original_error=e
            )

    async def get_many(self, db: AsyncSession, ids: Iterable[Any]) -> List[ModelType]:
        """
        Get every entity whose ID is in ``ids`` with a single query.

        Args:
            db: Async database session
            ids: IDs to load

        Returns:
            Entities found, ordered by ID. Unknown IDs are simply absent.
        """
        ids = list(ids)
        if not ids:
            return []
        try:
            query = select(self.model).where(self.model.id.in_(ids)).order_by(self.model.id)
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching {self.model.__name__}s {ids}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error fetching {self.model.__name__}s",
                original_error=e
            )

    async def get_by_field(self, db: AsyncSession, field_name: str, value: Any) -> Optional[ModelType]:
        """
        Get an entity by the value of a specific field.

        Args:
            db: Async database session
            field_name: Name of the field/column to filter
            value: Value to filter

        Returns:
            Entity found or None if it doesn't exist

        Raises:
            DatabaseOperationException: If an error occurs in the query
        """
        try:
            query = select(self.model).where(getattr(self.model, field_name) == value)
            result = await db.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching {self.model.__name__} with {field_name}={value}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error fetching {self.model.__name__} by {field_name}",
                original_error=e
            )

    async def exists(self, db: AsyncSession, *, exclude_id: Any = None, **filters) -> bool:
        """
        Check if an entity exists with the specified filters.

        Args:
            db: Async database session
            exclude_id: Ignore the row with this ID (used when updating)
            **filters: Filters in the format field=value

        Returns:
            True if it exists, False otherwise

        Raises:
            DatabaseOperationException: If an error occurs in the query
        """
        try:
            query = select(self.model.id)
            for field, value in filters.items():
                if hasattr(self.model, field):
                    query = query.where(getattr(self.model, field) == value)
            if exclude_id is not None:
                query = query.where(self.model.id != exclude_id)

            result = await db.execute(select(query.exists()))
            return bool(result.scalar())
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking existence of {self.model.__name__}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error checking existence of {self.model.__name__}",
                original_error=e
            )

    def list_query(self, **filters):
        """
        Build the select used by paginated listings.

        Args:
            **filters: Additional filters in the format field=value

        Returns:
            SQLAlchemy select ordered by ID
        """
        query = select(self.model)
        for field, value in filters.items():
            if hasattr(self.model, field) and value is not None:
                if isinstance(value, str) and value.startswith("%") and value.endswith("%"):
                    # LIKE filter for strings with wildcards
                    query = query.where(getattr(self.model, field).ilike(value))
                else:
                    query = query.where(getattr(self.model, field) == value)
        return query.order_by(self.model.id)

    async def get_multi(
            self, db: AsyncSession, *, skip: int = 0, limit: Optional[int] = 100, **filters
    ) -> List[ModelType]:
        """
        Get multiple entities with pagination and optional filters.

        Args:
            db: Async database session
            skip: Number of records to skip (for pagination)
            limit: Maximum number of records to return, None for all
            **filters: Additional filters in the format field=value

        Returns:
            List of found entities

        Raises:
            DatabaseOperationException: If an error occurs in the query
        """
        try:
            query = self.list_query(**filters).offset(skip)
            if limit is not None:
                query = query.limit(limit)
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing {self.model.__name__}s: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error listing {self.model.__name__}s",
                original_error=e
            )

    async def count(self, db: AsyncSession, **filters) -> int:
        """
        Count the number of entities matching the filters.

        Args:
            db: Async database session
            **filters: Filters in the format field=value

        Returns:
            Number of entities matching the filters

        Raises:
            DatabaseOperationException: If an error occurs in the query
        """
        try:
            query = select(func.count()).select_from(self.model)
            for field, value in filters.items():
                if hasattr(self.model, field) and value is not None:
                    query = query.where(getattr(self.model, field) == value)

            result = await db.execute(query)
            return result.scalar_one()

        except SQLAlchemyError as e:
            self.logger.error(f"Error counting {self.model.__name__}s: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error counting {self.model.__name__}s",
                original_error=e
            )

    async def create(self, db: AsyncSession, *, obj_in: Union[CreateSchemaType, Dict[str, Any]]) -> ModelType:
        """
        Create a new entity.

        Args:
            db: Async database session
            obj_in: Creation schema or dictionary with entity data

        Returns:
            Newly created entity

        Raises:
            ResourceAlreadyExistsException: If the entity already exists
            DatabaseOperationException: If another database error occurs
        """
        try:
            obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()

            db_obj = self.model(**obj_in_data)

            db.add(db_obj)
            await db.commit()
            await db.refresh(db_obj)

            self.logger.info(f"{self.model.__name__} created with ID: {db_obj.id}")
            return db_obj

        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                self.logger.warning(f"Attempt to create duplicate {self.model.__name__}: {str(e)}")
                raise ResourceAlreadyExistsException(
                    detail=f"{self.model.__name__} with these data already exists"
                )
            self.logger.error(f"Integrity error creating {self.model.__name__}: {str(e)}")
            raise DatabaseOperationException(original_error=e)

        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error creating {self.model.__name__}",
                original_error=e
            )

    async def create_many(
            self, db: AsyncSession, *, objs_in: Iterable[Union[CreateSchemaType, Dict[str, Any]]]
    ) -> List[ModelType]:
        """
        Create several entities in one transaction: either all rows are
        stored or none is.

        Args:
            db: Async database session
            objs_in: Creation schemas or dictionaries

        Returns:
            Newly created entities, in input order

        Raises:
            ResourceAlreadyExistsException: If any entity already exists
            DatabaseOperationException: If another database error occurs
        """
        db_objs = [
            self.model(**(obj_in if isinstance(obj_in, dict) else obj_in.model_dump()))
            for obj_in in objs_in
        ]
        if not db_objs:
            return []

        try:
            db.add_all(db_objs)
            await db.flush()
            await db.commit()
            for db_obj in db_objs:
                await db.refresh(db_obj)

            self.logger.info(f"{len(db_objs)} {self.model.__name__}(s) created")
            return db_objs

        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                self.logger.warning(f"Attempt to create duplicate {self.model.__name__}: {str(e)}")
                raise ResourceAlreadyExistsException(
                    detail=f"{self.model.__name__} with these data already exists"
                )
            self.logger.error(f"Integrity error creating {self.model.__name__}s: {str(e)}")
            raise DatabaseOperationException(original_error=e)

        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error creating {self.model.__name__}s: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error creating {self.model.__name__}s",
                original_error=e
            )

    async def update(
            self, db: AsyncSession, *, db_obj: ModelType, obj_in: Union[UpdateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        """
        Update an existing entity.

        Args:
            db: Async database session
            db_obj: Model instance to update
            obj_in: Update schema or dictionary with data to update

        Returns:
            Updated entity

        Raises:
            ResourceAlreadyExistsException: If the update violates a uniqueness constraint
            DatabaseOperationException: If another database error occurs
        """
        try:
            if isinstance(obj_in, dict):
                update_data = obj_in
            else:
                update_data = obj_in.model_dump(exclude_unset=True)

            for field, value in update_data.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)

            db.add(db_obj)
            await db.commit()
            await db.refresh(db_obj)

            self.logger.info(f"{self.model.__name__} with ID {db_obj.id} updated")
            return db_obj

        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                self.logger.warning(f"Uniqueness violation updating {self.model.__name__}: {str(e)}")
                raise ResourceAlreadyExistsException(
                    detail=f"Could not update {self.model.__name__}: value already exists"
                )
            self.logger.error(f"Integrity error updating {self.model.__name__}: {str(e)}")
            raise DatabaseOperationException(original_error=e)

        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error updating {self.model.__name__}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error updating {self.model.__name__}",
                original_error=e
            )

    async def remove(self, db: AsyncSession, *, id: Any) -> ModelType:
        """
        Remove an entity by ID.

        Args:
            db: Async database session
            id: ID of the entity to remove

        Returns:
            Removed entity

        Raises:
            ResourceNotFoundException: If the entity doesn't exist
            DatabaseOperationException: If an error occurs during removal
        """
        try:
            obj = await self.get(db, id)
            if not obj:
                raise ResourceNotFoundException(
                    detail=f"{self.model.__name__} with ID {id} not found"
                )

            await db.delete(obj)
            await db.commit()

            self.logger.info(f"{self.model.__name__} with ID {id} removed")
            return obj

        except IntegrityError as e:
            await db.rollback()
            self.logger.error(f"Integrity error removing {self.model.__name__}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Cannot remove {self.model.__name__} as it is being used by other entities",
                original_error=e
            )

        except ResourceNotFoundException:
            # Pass through the already formatted exception
            await db.rollback()
            raise

        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error removing {self.model.__name__}: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error removing {self.model.__name__}",
                original_error=e
            )
