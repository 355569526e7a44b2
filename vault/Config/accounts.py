"""
Recognized user accounts.

Accounts come from the environment-style configuration surface:
``USERS`` lists the names, ``USER_<name>`` holds each password and the
role is derived from ``ADMIN_USERNAME``, ``GUEST_USERNAMES``,
``USER_ROLES`` and ``DEFAULT_ROLE``.
"""

import os
from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Access role attached to every authenticated request."""
    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"
    GUEST = "guest"

    @classmethod
    def parse(cls, value: str) -> "Role":
        """Parse a role name; ``public`` is accepted as an alias of guest."""
        value = (value or "").strip().lower()
        if value == "public":
            return cls.GUEST
        return cls(value)


class UserAccount(BaseModel):
    """A recognized user."""
    username: str
    password: Optional[str] = Field(default=None, repr=False)
    role: Role = Role.USER

    def public_dict(self) -> Dict[str, str]:
        return {"username": self.username, "role": self.role.value}


def parse_role_overrides(entries: Iterable[str]) -> Dict[str, Role]:
    """Parse ``name:role`` pairs, skipping malformed ones."""
    overrides: Dict[str, Role] = {}
    for entry in entries:
        name, sep, role = entry.partition(":")
        if not sep or not name.strip():
            continue
        try:
            overrides[name.strip()] = Role.parse(role)
        except ValueError:
            continue
    return overrides


def build_accounts(
    usernames: Iterable[str],
    admin_username: str = "ADMIN",
    guest_usernames: Iterable[str] = ("INVITADO",),
    role_overrides: Optional[Dict[str, Role]] = None,
    default_role: Role = Role.USER,
    passwords: Optional[Dict[str, str]] = None,
) -> List[UserAccount]:
    """
    Build the account list.

    Passwords default to the ``USER_<name>`` environment variables.
    """
    role_overrides = role_overrides or {}
    guests = {g.upper() for g in guest_usernames}
    accounts = []

    for username in usernames:
        username = username.strip()
        if not username:
            continue

        if username in role_overrides:
            role = role_overrides[username]
        elif username.upper() == admin_username.upper():
            role = Role.ADMIN
        elif username.upper() in guests:
            role = Role.GUEST
        else:
            role = default_role

        if passwords is not None:
            password = passwords.get(username)
        else:
            password = os.environ.get(f"USER_{username}")

        accounts.append(UserAccount(username=username, password=password, role=role))

    return accounts


__all__ = ["Role", "UserAccount", "parse_role_overrides", "build_accounts"]
