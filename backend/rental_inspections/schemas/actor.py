"""Identity of whoever is invoking a workflow operation."""

from pydantic import Field

from rental_inspections.schemas.base import BaseSchema

RESOLVER_ROLES = frozenset({"inspector", "admin"})


class Actor(BaseSchema):
    """Authenticated caller, already stripped of transport details."""

    user_id: str = Field(..., min_length=1)
    roles: frozenset[str] = frozenset()

    @property
    def is_resolver(self) -> bool:
        return bool(self.roles & RESOLVER_ROLES)
