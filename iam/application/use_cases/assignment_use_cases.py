# iam/application/use_cases/assignment_use_cases.py

"""
Bulk assignment of relationships.

One generic service manages a (left, right) association: group -> roles,
group -> users and role -> permissions. Calls are idempotent:

- every requested right entity must exist, otherwise nothing is changed;
- pairs that already exist are reported as ``already_exists`` instead of
  failing, including pairs inserted by a concurrent request between our
  read and our insert;
- removing a pair that does not exist is reported as ``not_found``.
"""

import logging
from typing import Any, Dict, Iterable, List, Sequence
from sqlalchemy.ext.asyncio import AsyncSession

from iam.adapters.outbound.persistence.repositories import (
    group_repository,
    role_repository,
    user_repository,
    permission_repository,
    user_group_repository,
    group_role_repository,
    role_permission_repository,
)
from iam.application.ports.inbound import IAssignmentUseCase
from iam.domain.exceptions import (
    DomainException,
    InvalidInputException,
    ResourceNotFoundException,
    ResourcesNotFoundException,
    ResourceInactiveException,
    DatabaseOperationException,
)
from iam.domain.models.permission_domain_model import (
    AssignmentDetail,
    AssignmentResult,
    AssignmentStatus,
    RemovalResult,
)

# Configure logger
logger = logging.getLogger(__name__)


class AsyncAssignmentService(IAssignmentUseCase):
    """
    Assign, remove and list the right-side entities of one association.

    Subclasses bind the repositories and the labels used in messages.

    Attributes:
        left_label: Owner entity name, e.g. "Group"
        right_label: Assigned entity name, e.g. "Role"
        ids_field: Name of the request field holding the right ids
    """

    left_label = "Entity"
    right_label = "Item"
    ids_field = "item_ids"

    def __init__(self, db_session: AsyncSession, *, left, right, association):
        self.db = db_session
        self.left = left
        self.right = right
        self.association = association

    ########################################################################
    # Hooks
    ########################################################################

    def display_name(self, entity: Any) -> str:
        return entity.name

    def describe(self, entity: Any) -> Dict[str, Any]:
        """Extra fields reported for each right entity."""
        return {}

    async def check_assignable(self, entities: Sequence[Any]) -> None:
        """Refuse the whole batch by raising; the default accepts everything."""
        return None

    ########################################################################
    # Helpers
    ########################################################################

    async def _get_left(self, left_id: int) -> Any:
        entity = await self.left.get(self.db, id=left_id)
        if not entity:
            logger.warning(f"{self.left_label} not found: ID {left_id}")
            raise ResourceNotFoundException(
                detail=f"{self.left_label} with ID {left_id} not found",
                resource_id=left_id
            )
        return entity

    def _normalize_ids(self, right_ids: Any) -> List[int]:
        """
        Raises:
            InvalidInputException: If ids is not a list or is empty
        """
        right = self.right_label.lower()
        if not isinstance(right_ids, (list, tuple)):
            raise InvalidInputException(detail=f"{self.ids_field} must be an array of {right} IDs")
        if not right_ids:
            raise InvalidInputException(detail=f"At least one {right} ID must be provided")
        # Collapse duplicates, keeping request order
        return list(dict.fromkeys(right_ids))

    async def _load_rights(self, right_ids: List[int]) -> Dict[int, Any]:
        """
        Load every requested right entity.

        Raises:
            ResourcesNotFoundException: Listing every id that does not exist
        """
        found = {entity.id: entity for entity in await self.right.get_many(self.db, right_ids)}
        missing = [right_id for right_id in right_ids if right_id not in found]
        if missing:
            logger.warning(f"{self.right_label}s not found: {missing}")
            raise ResourcesNotFoundException(f"{self.right_label}s", missing)
        return found

    async def _prepare(self, left_id: int, right_ids: Any):
        await self._get_left(left_id)
        right_ids = self._normalize_ids(right_ids)
        rights = await self._load_rights(right_ids)
        await self.check_assignable([rights[right_id] for right_id in right_ids])
        return right_ids, rights

    def _detail(self, entity: Any, status: AssignmentStatus, message: str) -> AssignmentDetail:
        return AssignmentDetail(
            id=entity.id,
            name=self.display_name(entity),
            status=status,
            message=message,
            extra=self.describe(entity),
        )

    async def _insert(self, left_id: int, right_ids: List[int], rights: Dict[int, Any]) -> AssignmentResult:
        left = self.left_label.lower()
        existing = await self.association.existing_right_ids(self.db, left_id, right_ids)
        to_insert = [right_id for right_id in right_ids if right_id not in existing]

        inserted = set()
        if to_insert:
            inserted = await self.association.add_pairs(self.db, left_id, to_insert)

        result = AssignmentResult()
        for right_id in right_ids:
            if right_id in inserted:
                result.assigned += 1
                result.details.append(self._detail(
                    rights[right_id],
                    AssignmentStatus.ASSIGNED,
                    f"{self.right_label} successfully assigned to {left}",
                ))
            else:
                # Either present before the call or inserted concurrently
                result.skipped += 1
                result.details.append(self._detail(
                    rights[right_id],
                    AssignmentStatus.ALREADY_EXISTS,
                    f"{self.right_label} was already assigned to this {left}",
                ))
        return result

    ########################################################################
    # Operations
    ########################################################################

    async def assign(self, left_id: int, right_ids: Iterable[int]) -> AssignmentResult:
        """
        Attach right entities to the left entity, skipping existing pairs.

        Args:
            left_id: Owner entity
            right_ids: Entities to attach; duplicates are ignored

        Returns:
            Counts plus one detail per distinct requested id, in request order

        Raises:
            ResourceNotFoundException: If the left entity or any right entity is missing
            InvalidInputException: If the id list is malformed or empty
        """
        try:
            right_ids, rights = await self._prepare(left_id, right_ids)
            result = await self._insert(left_id, right_ids, rights)

            logger.info(
                f"{self.right_label}s assigned to {self.left_label.lower()} {left_id}: "
                f"{result.assigned} new, {result.skipped} already present"
            )
            return result

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Unexpected error assigning {self.right_label.lower()}s: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error assigning {self.right_label.lower()}s",
                original_error=e
            )

    async def remove(self, left_id: int, right_ids: Iterable[int]) -> RemovalResult:
        """
        Detach right entities, reporting the ones that were not attached.

        Right ids that no longer exist are reported as ``not_found`` with a
        placeholder name rather than rejected.

        Raises:
            ResourceNotFoundException: If the left entity is missing
            InvalidInputException: If the id list is malformed or empty
        """
        try:
            await self._get_left(left_id)
            right_ids = self._normalize_ids(right_ids)
            left = self.left_label.lower()

            existing = await self.association.existing_right_ids(self.db, left_id, right_ids)
            if existing:
                await self.association.remove_pairs(self.db, left_id, sorted(existing))

            names = {
                entity.id: entity for entity in await self.right.get_many(self.db, right_ids)
            }

            result = RemovalResult()
            for right_id in right_ids:
                entity = names.get(right_id)
                name = self.display_name(entity) if entity else f"{self.right_label} {right_id}"
                extra = self.describe(entity) if entity else {}

                if right_id in existing:
                    result.removed += 1
                    status = AssignmentStatus.REMOVED
                    message = f"{self.right_label} successfully removed from {left}"
                else:
                    result.not_found += 1
                    status = AssignmentStatus.NOT_FOUND
                    message = f"{self.right_label} was not assigned to this {left}"

                result.details.append(AssignmentDetail(
                    id=right_id, name=name, status=status, message=message, extra=extra
                ))

            logger.info(
                f"{self.right_label}s removed from {left} {left_id}: "
                f"{result.removed} removed, {result.not_found} not assigned"
            )
            return result

        except DomainException:
            raise

        except Exception as e:
            logger.exception(f"Unexpected error removing {self.right_label.lower()}s: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error removing {self.right_label.lower()}s",
                original_error=e
            )

    async def list(self, left_id: int) -> List[Any]:
        """
        Right entities attached to the left entity, ordered by id.

        Raises:
            ResourceNotFoundException: If the left entity is missing
        """
        await self._get_left(left_id)
        right_ids = await self.association.right_ids_for(self.db, [left_id])
        return await self.right.get_many(self.db, right_ids)

    async def list_reverse(self, right_id: int) -> List[Any]:
        """
        Left entities holding ``right_id``, ordered by id.

        Raises:
            ResourceNotFoundException: If the right entity is missing
        """
        if not await self.right.get(self.db, id=right_id):
            raise ResourceNotFoundException(
                detail=f"{self.right_label} with ID {right_id} not found",
                resource_id=right_id
            )
        left_ids = await self.association.left_ids_for(self.db, [right_id])
        return await self.left.get_many(self.db, left_ids)

    async def has(self, left_id: int, right_id: int) -> bool:
        return bool(await self.association.existing_right_ids(self.db, left_id, [right_id]))

    async def replace(self, left_id: int, right_ids: Iterable[int]) -> AssignmentResult:
        """
        Make ``right_ids`` the exact set attached to the left entity.

        An empty list clears the association. The new set is validated
        before anything is removed.

        Raises:
            ResourceNotFoundException: If the left entity or any right entity is missing
            InvalidInputException: If ids is not a list
        """
        if isinstance(right_ids, (list, tuple)) and not right_ids:
            await self._get_left(left_id)
            cleared = await self.association.remove_all_for_left(self.db, left_id)
            logger.info(f"Cleared {cleared} {self.right_label.lower()}(s) from {self.left_label.lower()} {left_id}")
            return AssignmentResult()

        try:
            right_ids, rights = await self._prepare(left_id, right_ids)
            await self.association.remove_all_for_left(self.db, left_id, commit=False)
            result = await self._insert(left_id, right_ids, rights)

            logger.info(
                f"{self.right_label}s of {self.left_label.lower()} {left_id} replaced "
                f"with {sorted(right_ids)}"
            )
            return result

        except DomainException:
            await self.db.rollback()
            raise

        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Unexpected error replacing {self.right_label.lower()}s: {str(e)}")
            raise DatabaseOperationException(
                detail=f"Error replacing {self.right_label.lower()}s",
                original_error=e
            )


class AsyncGroupRoleService(AsyncAssignmentService):
    left_label = "Group"
    right_label = "Role"
    ids_field = "role_ids"

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            left=group_repository,
            right=role_repository,
            association=group_role_repository,
    ):
        super().__init__(db_session, left=left, right=right, association=association)


class AsyncGroupUserService(AsyncAssignmentService):
    """Group membership. Inactive users cannot be added to a group."""

    left_label = "Group"
    right_label = "User"
    ids_field = "user_ids"

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            left=group_repository,
            right=user_repository,
            association=user_group_repository,
    ):
        super().__init__(db_session, left=left, right=right, association=association)

    def display_name(self, entity: Any) -> str:
        return entity.username

    def describe(self, entity: Any) -> Dict[str, Any]:
        return {"email": entity.email}

    async def check_assignable(self, entities: Sequence[Any]) -> None:
        inactive = [user.username for user in entities if not user.is_active]
        if inactive:
            logger.warning(f"Refusing to assign inactive users: {inactive}")
            raise ResourceInactiveException(detail=f"Cannot assign inactive users: {', '.join(inactive)}")

    async def list_active(self, group_id: int) -> List[Any]:
        """
        Active members of a group, ordered by id.

        Raises:
            ResourceNotFoundException: If the group is missing
        """
        return [user for user in await self.list(group_id) if user.is_active]

    async def count(self, group_id: int) -> Dict[str, int]:
        """
        Member counts of a group.

        Raises:
            ResourceNotFoundException: If the group is missing
        """
        users = await self.list(group_id)
        active = sum(1 for user in users if user.is_active)
        return {"total": len(users), "active": active, "inactive": len(users) - active}


class AsyncRolePermissionService(AsyncAssignmentService):
    left_label = "Role"
    right_label = "Permission"
    ids_field = "permission_ids"

    def __init__(
            self,
            db_session: AsyncSession,
            *,
            left=role_repository,
            right=permission_repository,
            association=role_permission_repository,
    ):
        super().__init__(db_session, left=left, right=right, association=association)

    def describe(self, entity: Any) -> Dict[str, Any]:
        return {"action": entity.action, "module_name": entity.module_name}

    async def list_by_module(self, role_id: int, module_name: str) -> List[Any]:
        """
        Permissions of a role restricted to one module, by module name.
        An unknown module name yields an empty list.

        Raises:
            ResourceNotFoundException: If the role is missing
        """
        return [
            permission for permission in await self.list(role_id)
            if permission.module_name == module_name
        ]
