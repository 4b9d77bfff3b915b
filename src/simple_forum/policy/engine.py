"""Authorization decisions and the per-resource-type access policy.

Pattern: Resolve, Then Authorize
---------------------------------
Every protected handler follows the same two steps, always in this order:

  1. Resolve the caller's session token through the ``SessionRegistry``.
     An unknown or expired token yields *no user*.
  2. Hand the resolved user (or ``None``) to one of the decision functions
     below together with the resource being requested.

Because step 1 always runs first, an expired session and an anonymous caller
are indistinguishable to every visibility rule.

The decision functions are pure: no I/O, no caching, no hidden state.  Two
independent policies live here:

  - **Visibility** (``is_authorized``): a forum with an empty whitelist is
    public; a non-empty whitelist admits only the listed users plus anyone at
    administrator tier or above.
  - **Tier gate** (``has_tier``): administrative queries require a minimum
    ``PermissionTier``.

Which resource types may be served without a live session at all, and which
tier each administrative query needs, is declared in ``policies/access.yaml``
and loaded by ``PolicyEngine``.  Forums and mail deliberately keep separate
entries: forums admit anonymous readers of public boards, mail never does.
"""

from __future__ import annotations

import dataclasses
import pathlib
from typing import Any, Protocol

import yaml

from simple_forum.identity.models import PermissionTier, User


class VisibilityRule(Protocol):
    """Anything carrying a whitelist of user ids."""

    @property
    def whitelist(self) -> frozenset[str]: ...


class AuthorizationDenied(Exception):
    """Raised when a resolved caller lacks the rights for a resource."""


class PolicyError(Exception):
    """Raised when the policy file is malformed or lookup fails."""


def is_authorized(resource: VisibilityRule, user: User | None) -> bool:
    """Return whether *user* (``None`` for anonymous) may see *resource*."""
    if not resource.whitelist:
        return True
    if user is None:
        return False
    return user.id in resource.whitelist or user.permission_tier >= PermissionTier.ADMINISTRATOR


def has_tier(user: User | None, required: PermissionTier) -> bool:
    """Return whether *user* holds at least the *required* tier."""
    return user is not None and user.permission_tier >= required


def require_authorized(resource: VisibilityRule, user: User | None) -> None:
    if not is_authorized(resource, user):
        raise AuthorizationDenied("You are not authorized to access this forum")


def require_tier(user: User | None, required: PermissionTier) -> None:
    if not has_tier(user, required):
        raise AuthorizationDenied(f"Requires {required.value} permissions")


@dataclasses.dataclass(frozen=True)
class ResolvedPolicy:
    """Access policy for one resource type.

    Attributes:
        resource_type:   Name of the resource type (e.g. ``"forums"``).
        allow_anonymous: Whether callers without a live session may be served.
    """

    resource_type: str
    allow_anonymous: bool


class PolicyEngine:
    """Loads ``access.yaml`` and answers per-resource-type policy lookups."""

    def __init__(self, policy_path: str | pathlib.Path | None = None) -> None:
        if policy_path is None:
            policy_path = pathlib.Path(__file__).resolve().parents[3] / "policies" / "access.yaml"
        self._policy_path = pathlib.Path(policy_path)
        self._data: dict[str, Any] = self._load()

    def reload(self) -> None:
        """Re-read the policy file from disk."""
        self._data = self._load()

    def resolve(self, resource_type: str) -> ResolvedPolicy:
        """Return the policy for *resource_type*.

        Raises ``PolicyError`` if the resource type is not defined.
        """
        block = self._data["resources"].get(resource_type)
        if block is None:
            raise PolicyError(f"Unknown resource type: {resource_type}")
        if not isinstance(block, dict):
            raise PolicyError(f"Policy for resource type '{resource_type}' must be a mapping")
        return ResolvedPolicy(
            resource_type=resource_type,
            allow_anonymous=bool(block.get("allow_anonymous", False)),
        )

    def required_tier(self, query: str) -> PermissionTier:
        """Return the minimum tier for administrative *query*."""
        block = (self._data.get("queries") or {}).get(query)
        if block is None:
            raise PolicyError(f"Unknown query: {query}")
        try:
            return PermissionTier.parse(block.get("required_tier", "administrator"))
        except (AttributeError, ValueError) as exc:
            raise PolicyError(f"Invalid tier for query '{query}': {exc}") from exc

    def list_resources(self) -> list[str]:
        """Return all resource types defined in the policy file."""
        return list(self._data["resources"].keys())

    # -- private helpers -----------------------------------------------------

    def _load(self) -> dict[str, Any]:
        if not self._policy_path.exists():
            raise PolicyError(f"Policy file not found: {self._policy_path}")
        with open(self._policy_path) as fh:
            data = yaml.safe_load(fh)
        if not isinstance(data, dict) or not isinstance(data.get("resources"), dict):
            raise PolicyError("Policy file must contain a top-level 'resources' mapping")
        return data
