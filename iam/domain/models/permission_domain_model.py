# iam/domain/models/permission_domain_model.py

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class Action(str, Enum):
    """The four canonical CRUD actions a permission can grant."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def values(cls) -> List[str]:
        return [a.value for a in cls]


@dataclass
class PermissionCheck:
    """Outcome of a point authorization query."""
    user_id: int
    module_id: int
    action: str
    has_permission: bool
    module_name: Optional[str] = None


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    ALREADY_EXISTS = "already_exists"
    REMOVED = "removed"
    NOT_FOUND = "not_found"


@dataclass
class AssignmentDetail:
    """Per-item outcome of a bulk assign or remove call."""
    id: int
    name: str
    status: AssignmentStatus
    message: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AssignmentResult:
    """Result of a bulk assign: new rows plus rows that were already there."""
    assigned: int = 0
    skipped: int = 0
    details: List[AssignmentDetail] = field(default_factory=list)


@dataclass
class RemovalResult:
    """Result of a bulk remove."""
    removed: int = 0
    not_found: int = 0
    details: List[AssignmentDetail] = field(default_factory=list)
