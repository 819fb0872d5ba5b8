# iam/application/ports/inbound.py

from abc import ABC, abstractmethod
from typing import Any, Iterable, List

from iam.domain.models.permission_domain_model import (
    AssignmentResult,
    PermissionCheck,
    RemovalResult,
)


class IPermissionResolver(ABC):
    """Interface for effective-permission queries."""

    @abstractmethod
    async def get_user_permissions(self, user_id: int) -> List[Any]:
        """Deduplicated permissions reachable from the user."""
        pass

    @abstractmethod
    async def check_permission(self, user_id: int, module_id: int, action: str) -> bool:
        """Whether the user holds the (module, action) grant."""
        pass

    @abstractmethod
    async def check_permission_by_module_name(
            self, user_id: int, module_name: str, action: str
    ) -> bool:
        """Point check addressed by module name."""
        pass

    @abstractmethod
    async def explain_permission_by_module_name(
            self, user_id: int, module_name: str, action: str
    ) -> PermissionCheck:
        """Point check by module name, returning the check with its module."""
        pass

    @abstractmethod
    async def simulate_action(self, user_id: int, module_id: int, action: str) -> PermissionCheck:
        """Validated point check with module details."""
        pass


class IAssignmentUseCase(ABC):
    """Interface shared by the three relationship assignment services."""

    @abstractmethod
    async def assign(self, left_id: int, right_ids: Iterable[int]) -> AssignmentResult:
        """Attach right entities to the left entity, skipping existing pairs."""
        pass

    @abstractmethod
    async def remove(self, left_id: int, right_ids: Iterable[int]) -> RemovalResult:
        """Detach right entities, reporting the ones that were not attached."""
        pass

    @abstractmethod
    async def list(self, left_id: int) -> List[Any]:
        """Right entities attached to the left entity."""
        pass
