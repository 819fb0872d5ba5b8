# iam/adapters/outbound/persistence/repositories/module_repository.py

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from iam.adapters.outbound.persistence.models import Module
from iam.application.dtos.module_dto import ModuleCreate, ModuleUpdate
from iam.application.ports.outbound import INamedRepository


class AsyncModuleCRUD(AsyncCRUDBase[Module, ModuleCreate, ModuleUpdate], INamedRepository[Module]):
    """Repository for modules."""

    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[Module]:
        return await self.get_by_field(db, "name", name)


module_repository = AsyncModuleCRUD(Module)
