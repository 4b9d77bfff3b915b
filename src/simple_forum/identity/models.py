"""User records and permission tiers.

Pattern: Ordered Tier Enum
---------------------------
Administrative gating compares tiers (``REGISTERED_USER < ADMINISTRATOR <
SUPER_USER``).  The tiers are an ``Enum`` with an explicit rank rather than an
``IntEnum`` so that a tier can only ever be compared with another tier:
``tier >= 1`` is a ``TypeError``, and an out-of-range integer can never sneak
into a user record.
"""

from __future__ import annotations

import dataclasses
import datetime
import enum
import functools


@functools.total_ordering
class PermissionTier(enum.Enum):
    """Administrative level attached to an identity."""

    REGISTERED_USER = "registered_user"
    ADMINISTRATOR = "administrator"
    SUPER_USER = "super_user"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    @classmethod
    def parse(cls, raw: str) -> PermissionTier:
        """Parse a tier name as written in policy files (case-insensitive)."""
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown permission tier: {raw!r}") from None

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, PermissionTier):
            return NotImplemented
        return self.rank < other.rank


_TIER_RANK: dict[PermissionTier, int] = {
    PermissionTier.REGISTERED_USER: 0,
    PermissionTier.ADMINISTRATOR: 1,
    PermissionTier.SUPER_USER: 2,
}


@dataclasses.dataclass
class User:
    """A registered account.

    Attributes:
        id:                 Opaque unique identifier (UUID4 text).
        username:           Unique login name, also the public identifier.
        email:              Unique address; login accepts it in place of the username.
        password_hash:      Encoded hash produced by ``identity.passwords``.
        permission_tier:    Administrative level.
        is_email_confirmed: Whether the address has been confirmed.
        last_login:         UTC timestamp of the most recent login.
        created_at:         UTC timestamp of registration.
    """

    id: str
    username: str
    email: str
    password_hash: str
    permission_tier: PermissionTier = PermissionTier.REGISTERED_USER
    is_email_confirmed: bool = False
    last_login: datetime.datetime | None = None
    created_at: datetime.datetime = dataclasses.field(
        default_factory=lambda: datetime.datetime.now(datetime.UTC)
    )

    def __str__(self) -> str:
        return f"User(username={self.username}, tier={self.permission_tier.value})"
