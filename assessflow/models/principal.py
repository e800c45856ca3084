from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Tokens are issued elsewhere; this service only verifies them and reads
    the subject and roles.  Roles used here:
        learner / user: may start attempts and submit assignments
        instructor: may review and grade
        admin: may do anything an instructor can
    """

    user_id: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    def is_platform_admin(self) -> bool:
        return "admin" in self.roles
