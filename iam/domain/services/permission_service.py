# iam/domain/services/permission_service.py

from typing import Any, Dict, Iterable, List, Optional

from iam.domain.models.permission_domain_model import Action


class PermissionClosureService:
    """
    Domain rules for combining and querying effective permissions.

    Works on any object exposing ``id``, ``module_id`` and ``action``
    attributes, so it can be used with ORM rows and test doubles alike.
    """

    @staticmethod
    def merge_unique(*permission_groups: Iterable[Any]) -> List[Any]:
        """
        Union several permission collections, keeping one entry per id.

        Args:
            *permission_groups: Collections of permissions, one per path

        Returns:
            List of permissions in first-seen order
        """
        merged: Dict[int, Any] = {}
        for permissions in permission_groups:
            for permission in permissions:
                merged.setdefault(permission.id, permission)
        return list(merged.values())

    @staticmethod
    def grants(permissions: Iterable[Any], module_id: int, action: str) -> bool:
        """
        Check whether the collection contains a (module, action) grant.

        The action is compared as an opaque string; an unknown action
        never matches.
        """
        return any(
            p.module_id == module_id and p.action == action
            for p in permissions
        )

    @staticmethod
    def is_canonical_action(action: Optional[str]) -> bool:
        return action in Action.values()

    @staticmethod
    def qualified_name(module_name: Optional[str], action: str) -> str:
        """Render a permission as ``Module:action``."""
        return f"{module_name or 'Unknown'}:{action}"
