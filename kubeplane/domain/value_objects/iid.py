"""
IID Value Object

Architectural Intent:
- Dual identifier addressing every cluster and node group
- name_id is chosen by the caller at creation time and never changes
- system_id is issued by the provider on first successful creation and is
  authoritative whenever it is present
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class IID:
    """
    Value Object pairing a caller-chosen name with a provider system id.
    """
    name_id: str = ""
    system_id: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.name_id, str) or not isinstance(self.system_id, str):
            raise TypeError("IID fields must be strings")

    @property
    def is_empty(self) -> bool:
        return not self.name_id and not self.system_id

    def matches(self, other: "IID") -> bool:
        """
        True iff both system ids are set and equal, or (when either is
        empty) both names are equal.
        """
        if self.system_id and other.system_id:
            return self.system_id == other.system_id
        return self.name_id == other.name_id

    def with_system_id(self, system_id: str) -> "IID":
        if self.system_id and self.system_id != system_id:
            raise ValueError(
                f"system_id is immutable: {self.system_id!r} -> {system_id!r}"
            )
        return replace(self, system_id=system_id)

    def __str__(self) -> str:
        if self.name_id and self.system_id:
            return f"{self.name_id}({self.system_id})"
        return self.name_id or self.system_id or "<empty>"

    @staticmethod
    def by_name(name_id: str) -> "IID":
        return IID(name_id=name_id)

    @staticmethod
    def by_system_id(system_id: str) -> "IID":
        return IID(system_id=system_id)
