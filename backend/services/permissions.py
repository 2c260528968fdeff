"""
SalesDesk CRM - Role & Scope System
Roles are a closed set: standard users, admins, super admins.
Admin-tier roles see every owner's data; everyone else is scoped to their own
rows, and the scope is applied inside the query filter.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Admin-tier spellings of users.role: admin, SuperAdmin, super_admin, super-admin...
# Case-insensitive, surrounding whitespace ignored.
PRIVILEGED_ROLE_PATTERN = r"^\s*(admin|super[_-]?admin)\s*$"
_PRIVILEGED_ROLE_RE = re.compile(PRIVILEGED_ROLE_PATTERN, re.IGNORECASE)


class Role(str, Enum):
    STANDARD = "standard"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @classmethod
    def from_value(cls, raw: Optional[str]) -> "Role":
        """Map a stored role string (admin, SuperAdmin, super-admin, sales...) to a Role."""
        if isinstance(raw, Role):
            return raw
        match = _PRIVILEGED_ROLE_RE.match(raw or "")
        if match is None:
            return cls.STANDARD
        if match.group(1).lower() == "admin":
            return cls.ADMIN
        return cls.SUPER_ADMIN


def non_privileged_role_filter(field: str = "role") -> dict:
    """
    Query predicate excluding admin-tier roles, same matching as Role.from_value.
    Users without a role field are kept.
    """
    return {field: {"$not": {"$regex": PRIVILEGED_ROLE_PATTERN, "$options": "i"}}}


def is_privileged(role) -> bool:
    """Single predicate for admin-tier access."""
    return Role.from_value(role) in (Role.ADMIN, Role.SUPER_ADMIN)


@dataclass(frozen=True)
class Requester:
    id: int
    role: Role = Role.STANDARD

    @classmethod
    def from_user(cls, user: dict) -> "Requester":
        return cls(id=int(user["id"]), role=Role.from_value(user.get("role")))

    @property
    def is_privileged(self) -> bool:
        return is_privileged(self.role)

    @property
    def owner_scope(self) -> Optional[int]:
        """None = all owners, else the only owner id the requester may see."""
        if self.is_privileged:
            return None
        return self.id


def build_owner_filter(owner_id: Optional[int], field: str = "owner_id") -> dict:
    """
    Build a MongoDB filter for ownership isolation.
    owner_id=None -> no filter
    owner_id=N -> strict filter
    """
    if owner_id is None:
        return {}
    return {field: owner_id}
