# iam/adapters/outbound/persistence/seeds/permissions.py

"""
Seed script for the system modules, their standard permissions and the
initial administrator.

Running it twice is safe: existing rows are reused and existing
associations are skipped.

    python -m iam.adapters.outbound.persistence.seeds.permissions
"""

import asyncio
import logging
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.configuration.config import settings
from iam.adapters.outbound.persistence.repositories import (
    group_repository,
    role_repository,
    module_repository,
    permission_repository,
    user_repository,
    user_group_repository,
    group_role_repository,
    role_permission_repository,
)
from iam.application.dtos.user_dto import UserCreate
from iam.application.use_cases.module_use_cases import AsyncModuleService

logger = logging.getLogger(__name__)

# Modules guarded by require_permission in the API
SYSTEM_MODULES = {
    "Users": "User accounts",
    "Groups": "User groups",
    "Roles": "Roles granted to groups",
    "Modules": "Protected application modules",
    "Permissions": "Module level permissions",
    "Assignments": "Group, role and permission assignments",
    "Audit": "Audit log and system reports",
}

ADMIN_ROLE = "Administrator"
ADMIN_GROUP = "Administrators"


async def _get_or_create(repository, db: AsyncSession, name: str, description: str):
    entity = await repository.get_by_name(db, name)
    if entity:
        logger.info(f"{repository.model.__name__} '{name}' already exists.")
        return entity

    entity = await repository.create(db, obj_in={"name": name, "description": description})
    logger.info(f"{repository.model.__name__} '{name}' created.")
    return entity


async def run_permissions_seed(db: AsyncSession) -> None:
    """Create modules, standard permissions, the admin role, group and user."""
    module_service = AsyncModuleService(db)

    permission_ids = []
    for name, description in SYSTEM_MODULES.items():
        module = await _get_or_create(module_repository, db, name, description)
        await module_service.create_standard_permissions(module.id)
        permission_ids.extend(p.id for p in await permission_repository.get_by_module(db, module.id))

    role = await _get_or_create(role_repository, db, ADMIN_ROLE, "Full access to every module")
    added = await role_permission_repository.add_pairs(db, role.id, permission_ids)
    logger.info(f"{len(added)} permission(s) granted to role '{ADMIN_ROLE}'.")

    group = await _get_or_create(group_repository, db, ADMIN_GROUP, "System administrators")
    await group_role_repository.add_pairs(db, group.id, [role.id])

    admin = await user_repository.get_by_email(db, settings.ADMIN_EMAIL)
    if not admin:
        admin = await user_repository.create_with_password(db, obj_in=UserCreate(
            username=settings.ADMIN_USERNAME,
            email=settings.ADMIN_EMAIL,
            password=settings.ADMIN_PASSWORD,
            first_name="System",
            last_name="Administrator",
        ))
        logger.info(f"Admin user '{admin.username}' created.")
    else:
        logger.info(f"Admin user '{admin.username}' already exists.")

    await user_group_repository.add_pairs(db, group.id, [admin.id])
    logger.info("Permissions seed finished successfully.")


async def main() -> None:
    from iam.adapters.outbound.persistence.database import create_tables, get_db_context

    await create_tables()
    async with get_db_context() as db:
        await run_permissions_seed(db)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
