"""Caller identity threaded through every cluster operation."""
from __future__ import annotations
from dataclasses import dataclass, field

USER_KIND = "user"
SERVICE_ACCOUNT_KIND = "service-account"

SERVICE_ACCOUNT_PREFIX = "system:serviceaccount:"


@dataclass(frozen=True)
class Identity:
    """Principal on whose behalf the cluster is called.

    Attributes:
        name: Principal name as the cluster knows it (e.g. ``alice`` or
            ``system:serviceaccount:cf:deployer``)
        kind: ``user`` or ``service-account``
        groups: Group memberships sent along with the impersonated user
    """

    name: str
    kind: str = USER_KIND
    groups: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_username(cls, username: str, groups=None) -> "Identity":
        """Build an identity, detecting service-account usernames."""
        kind = SERVICE_ACCOUNT_KIND if username.startswith(SERVICE_ACCOUNT_PREFIX) else USER_KIND
        return cls(name=username, kind=kind, groups=tuple(groups or ()))

    @property
    def is_service_account(self) -> bool:
        return self.kind == SERVICE_ACCOUNT_KIND

    def __str__(self) -> str:
        return f"{self.kind}:{self.name}"
