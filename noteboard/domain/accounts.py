"""Domain rules about who may see or change an account."""
from __future__ import annotations

from typing import Optional, Protocol

ADMIN_ROLE = "admin"
USER_ROLE = "user"
ROLES = {ADMIN_ROLE, USER_ROLE}


class Caller(Protocol):
    id: int
    role: str


def is_admin(caller: Optional[Caller]) -> bool:
    return caller is not None and caller.role == ADMIN_ROLE


def can_manage(caller: Optional[Caller], user_id: Optional[int]) -> bool:
    """Admins may act on any account, everybody else only on their own."""
    if caller is None or user_id is None:
        return False
    return is_admin(caller) or caller.id == user_id
