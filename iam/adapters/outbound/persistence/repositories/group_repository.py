# iam/adapters/outbound/persistence/repositories/group_repository.py

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from iam.adapters.outbound.persistence.models import Group
from iam.application.dtos.group_dto import GroupCreate, GroupUpdate
from iam.application.ports.outbound import INamedRepository


class AsyncGroupCRUD(AsyncCRUDBase[Group, GroupCreate, GroupUpdate], INamedRepository[Group]):
    """Repository for groups."""

    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[Group]:
        return await self.get_by_field(db, "name", name)


group_repository = AsyncGroupCRUD(Group)
