"""
Caller context handed to every service call.

The HTTP layer builds a CallContext from the validated bearer token and
passes it explicitly as an argument; services never reach for a global.
"""

from dataclasses import dataclass, field

from bankcards.exceptions import UnauthenticatedError
from bankcards.models.user import Role


@dataclass(frozen=True)
class CallContext:
    username: str
    roles: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def for_role(cls, username: str, role: Role) -> "CallContext":
        return cls(username=username, roles=frozenset({role.value}))

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN.value in self.roles


def require_context(ctx: CallContext | None) -> CallContext:
    """Return ctx, or raise UnauthenticatedError when no caller is present."""
    if ctx is None or not ctx.username:
        raise UnauthenticatedError()
    return ctx
