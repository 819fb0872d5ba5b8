# iam/application/ports/outbound.py

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, List, Optional, Set, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar('T')


class IRepository(Generic[T], ABC):
    """Generic repository interface."""

    @abstractmethod
    async def get(self, db: AsyncSession, id: Any) -> Optional[T]:
        """Get entity by ID."""
        pass

    @abstractmethod
    async def get_many(self, db: AsyncSession, ids: Iterable[Any]) -> List[T]:
        """Get every entity whose ID is in ids, in one query."""
        pass

    @abstractmethod
    async def create(self, db: AsyncSession, *, obj_in: Any) -> T:
        """Create a new entity."""
        pass

    @abstractmethod
    async def update(self, db: AsyncSession, *, db_obj: T, obj_in: Any) -> T:
        """Update an existing entity."""
        pass

    @abstractmethod
    async def remove(self, db: AsyncSession, *, id: Any) -> T:
        """Delete an entity by ID."""
        pass


class IUserRepository(IRepository[T], ABC):
    """User repository interface."""

    @abstractmethod
    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[T]:
        """Get user by email."""
        pass

    @abstractmethod
    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[T]:
        """Get user by username."""
        pass

    @abstractmethod
    async def create_with_password(self, db: AsyncSession, *, obj_in: Any) -> T:
        """Create user with hashed password."""
        pass


class INamedRepository(IRepository[T], ABC):
    """Repository for entities with a unique name (groups, roles, modules)."""

    @abstractmethod
    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[T]:
        """Get entity by its unique name."""
        pass


class IPermissionRepository(IRepository[T], ABC):
    """Permission repository interface."""

    @abstractmethod
    async def get_by_triple(
            self, db: AsyncSession, name: str, action: str, module_id: int
    ) -> Optional[T]:
        """Get the permission identified by (name, action, module_id)."""
        pass

    @abstractmethod
    async def get_by_module_action(self, db: AsyncSession, module_id: int, action: str) -> List[T]:
        """All permissions granting an action on a module."""
        pass

    @abstractmethod
    async def get_by_module(self, db: AsyncSession, module_id: int) -> List[T]:
        """All permissions of a module."""
        pass

    @abstractmethod
    async def create_many(self, db: AsyncSession, *, objs_in: Iterable[Any]) -> List[T]:
        """Create several permissions in one transaction."""
        pass


class IAssociationRepository(ABC):
    """Join table interface. Every read is a single batched query."""

    @abstractmethod
    async def right_ids_for(self, db: AsyncSession, left_ids: Iterable[int]) -> List[int]:
        """Distinct right ids joined to any of left_ids."""
        pass

    @abstractmethod
    async def left_ids_for(self, db: AsyncSession, right_ids: Iterable[int]) -> List[int]:
        """Distinct left ids joined to any of right_ids."""
        pass

    @abstractmethod
    async def existing_right_ids(self, db: AsyncSession, left_id: int, right_ids: Iterable[int]) -> Set[int]:
        """Subset of right_ids already joined to left_id."""
        pass

    @abstractmethod
    async def add_pairs(self, db: AsyncSession, left_id: int, right_ids: Iterable[int]) -> Set[int]:
        """Insert pairs ignoring conflicts; return the right ids inserted."""
        pass

    @abstractmethod
    async def remove_pairs(self, db: AsyncSession, left_id: int, right_ids: Iterable[int]) -> int:
        """Delete pairs; return the number removed."""
        pass

    @abstractmethod
    async def count_orphans(self, db: AsyncSession) -> int:
        """Rows pointing at a missing left or right entity."""
        pass


class IAuditSink(ABC):
    """Destination for audit events written after successful mutations."""

    @abstractmethod
    async def log_event(
            self,
            action: str,
            resource: str,
            resource_id: Optional[int] = None,
            user_id: Optional[int] = None,
            details: Optional[Dict[str, Any]] = None,
            ip_address: Optional[str] = None,
            user_agent: Optional[str] = None,
    ) -> None:
        """Record an event. Must never raise into the caller."""
        pass
