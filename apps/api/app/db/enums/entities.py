"""Entity kind enums."""

from enum import Enum


class EntityKind(str, Enum):
    """
    Fixed entity kinds that team types can be attached to.

    Not tenant-extensible: every team type belongs to exactly one kind and
    can only be assigned to entities of that kind.
    """

    CONTACT = "contact"
    COMPANY = "company"
    EMPLOYEE = "employee"

    @property
    def label(self) -> str:
        return ENTITY_KIND_LABELS[self]

    def plural(self, count: int) -> str:
        """Label pluralised for ``count`` (``1 contact`` / ``3 companies``)."""
        singular = self.label
        if count == 1:
            return singular
        if singular.endswith("y"):
            return f"{singular[:-1]}ies"
        return f"{singular}s"


ENTITY_KIND_LABELS = {
    EntityKind.CONTACT: "contact",
    EntityKind.COMPANY: "company",
    EntityKind.EMPLOYEE: "employee",
}
