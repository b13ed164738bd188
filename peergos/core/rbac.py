"""Role-based permission evaluation.

A static ``Role -> Resource -> {view, edit}`` table answers every access
question; anything not listed is denied. The table is read-only and loaded
once per process, optionally from the JSON file named by
``PERMISSION_MATRIX_FILE``.
"""
from __future__ import annotations

import json
import logging
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from pydantic import TypeAdapter, ValidationError

from peergos.core.audit import AuditLog
from peergos.core.config import settings
from peergos.core.exceptions import ConfigurationError, PermissionDeniedError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    SME = "SME"
    TAX_AGENT = "Tax Agent"
    ADMIN = "Admin"
    FTA = "FTA"


RESOURCES = ("setup", "filing", "dashboard", "trnSearch", "assistant")
PERMISSIONS = ("view", "edit")

_VIEW = {"view": True, "edit": False}
_FULL = {"view": True, "edit": True}
_NONE = {"view": False, "edit": False}

DEFAULT_MATRIX: dict[str, dict[str, dict[str, bool]]] = {
    Role.SME.value: {
        "setup": _FULL,
        "filing": _FULL,
        "dashboard": _VIEW,
        "trnSearch": _VIEW,
        "assistant": _FULL,
    },
    Role.TAX_AGENT.value: {
        "setup": _VIEW,
        "filing": _FULL,
        "dashboard": _VIEW,
        "trnSearch": _VIEW,
        "assistant": _FULL,
    },
    Role.ADMIN.value: {resource: _FULL for resource in RESOURCES},
    Role.FTA.value: {
        "setup": _NONE,
        "filing": _NONE,
        "dashboard": _VIEW,
        "trnSearch": _FULL,
        "assistant": _NONE,
    },
}

PATH_TO_RESOURCE: Mapping[str, str] = MappingProxyType(
    {
        "/": "dashboard",
        "/dashboard": "dashboard",
        "/admin": "dashboard",
        "/setup": "setup",
        "/filing": "filing",
        "/assistant": "assistant",
        "/trn-search": "trnSearch",
    }
)

_MatrixAdapter = TypeAdapter(dict[str, dict[str, dict[str, bool]]])


def _freeze(matrix: dict[str, dict[str, dict[str, bool]]]) -> Mapping[str, Mapping[str, Mapping[str, bool]]]:
    return MappingProxyType(
        {
            role: MappingProxyType({res: MappingProxyType(dict(perms)) for res, perms in resources.items()})
            for role, resources in matrix.items()
        }
    )


@lru_cache
def get_permission_matrix() -> Mapping[str, Mapping[str, Mapping[str, bool]]]:
    path = settings.PERMISSION_MATRIX_FILE
    if not path:
        return _freeze(DEFAULT_MATRIX)
    try:
        with open(path, encoding="utf-8") as f:
            matrix = _MatrixAdapter.validate_python(json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ConfigurationError("PERMISSION_MATRIX_FILE", str(e)) from e
    logger.info("Loaded permission matrix from %s (%d roles)", path, len(matrix))
    return _freeze(matrix)


def _key(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def has_permission(role: Role | str, resource: str, permission: str) -> bool:
    """Fail-closed lookup: unknown role, resource or permission is denied."""
    perms = get_permission_matrix().get(_key(role), {}).get(resource, {})
    return perms.get(permission, False) is True


def resource_for_path(path: str) -> str | None:
    normalized = path.split("?", 1)[0].rstrip("/") or "/"
    return PATH_TO_RESOURCE.get(normalized)


def can_access(role: Role | str, path: str) -> bool:
    resource = resource_for_path(path)
    if resource is None:
        return False
    return has_permission(role, resource, "view")


class RoleContext:
    """The session's current role. Created at session start, passed explicitly."""

    def __init__(self, audit: AuditLog, role: Role = Role.SME):
        self.audit = audit
        self.role = Role(role)
        if audit.role_provider is None:
            audit.role_provider = lambda: self.role.value

    @property
    def current(self) -> str:
        return self.role.value

    def switch_role(self, new_role: Role | str) -> Role:
        target = Role(new_role)
        previous = self.role
        # Recorded under the outgoing role
        self.audit.log("SWITCH_ROLE", {"from": previous.value, "to": target.value}, role=previous.value)
        self.role = target
        return target

    def has_permission(self, resource: str, permission: str) -> bool:
        return has_permission(self.role, resource, permission)

    def can_access(self, path: str) -> bool:
        return can_access(self.role, path)

    def record_page_view(self, path: str) -> bool:
        """Audit a navigation; returns whether the page is viewable."""
        resource = resource_for_path(path)
        allowed = resource is not None and has_permission(self.role, resource, "view")
        action = f"VIEW_{resource.upper()}" if resource else "VIEW_UNKNOWN"
        if allowed:
            self.audit.log(action, {"path": path})
        else:
            self.audit.log_denied(action, reason="insufficient permission", path=path)
        return allowed

    def require_permission(self, resource: str, permission: str) -> None:
        if not has_permission(self.role, resource, permission):
            self.audit.log_denied(
                f"{permission.upper()}_{resource.upper()}",
                reason="insufficient permission",
                resource=resource,
                permission=permission,
            )
            raise PermissionDeniedError(self.role.value, resource, permission)
