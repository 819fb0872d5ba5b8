# iam/adapters/outbound/persistence/repositories/role_repository.py

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from iam.adapters.outbound.persistence.models import Role
from iam.application.dtos.role_dto import RoleCreate, RoleUpdate
from iam.application.ports.outbound import INamedRepository


class AsyncRoleCRUD(AsyncCRUDBase[Role, RoleCreate, RoleUpdate], INamedRepository[Role]):
    """Repository for roles."""

    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[Role]:
        return await self.get_by_field(db, "name", name)


role_repository = AsyncRoleCRUD(Role)
