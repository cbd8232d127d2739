from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"


@dataclass(frozen=True)
class CallerIdentity:
    """The authenticated caller, passed explicitly into every operation."""

    user_id: str
    role: Role
    email: str = ""
    name: str = ""

    @property
    def is_elevated(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def can_write(self) -> bool:
        return self.role in (Role.ADMIN, Role.EDITOR)

    def owner_scope(self) -> str | None:
        """Owner filter for record lookups; None lets an elevated caller see every row."""
        return None if self.is_elevated else self.user_id
