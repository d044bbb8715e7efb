"""
Identity Resolution Service

Architectural Intent:
- Resolves a dual identifier (IID) against the provider's current resource
  set, as obtained from an adapter list call
- Shared by adapters (to locate records) and managers (to locate targets)

Domain Logic:
- system_id present: match by system_id only, name is informational
- system_id empty: match by name; more than one match is an error, never
  "first occurrence wins"
"""

from __future__ import annotations
from typing import Iterable, Protocol, TypeVar

from kubeplane.domain.errors import AmbiguousNameError, NotFoundError
from kubeplane.domain.value_objects.iid import IID


class Identified(Protocol):
    iid: IID


T = TypeVar("T", bound=Identified)


def iid_equals(a: IID, b: IID) -> bool:
    """True iff both system ids are set and equal, else names are equal."""
    return a.matches(b)


def resolve(
    iid: IID,
    resources: Iterable[T],
    operation: str = "Resolve",
    kind: str = "resource",
) -> T:
    """
    Find the one resource addressed by iid.

    Raises:
        ValueError: both name_id and system_id are empty.
        NotFoundError: nothing matches.
        AmbiguousNameError: no system_id given and the name is shared.
    """
    if iid.is_empty:
        raise ValueError(f"Cannot resolve {kind} with an empty IID")

    if iid.system_id:
        for resource in resources:
            if resource.iid.system_id == iid.system_id:
                return resource
        raise NotFoundError(
            f"No {kind} with system id {iid.system_id!r}",
            operation=operation,
            target=iid,
        )

    matches = [r for r in resources if r.iid.name_id == iid.name_id]
    if not matches:
        raise NotFoundError(
            f"No {kind} named {iid.name_id!r}",
            operation=operation,
            target=iid,
        )
    if len(matches) > 1:
        raise AmbiguousNameError(
            f"{len(matches)} {kind}s share the name {iid.name_id!r}; "
            "address it by system id",
            matches=len(matches),
            operation=operation,
            target=iid,
        )
    return matches[0]


def name_in_use(name_id: str, resources: Iterable[Identified]) -> bool:
    return any(r.iid.name_id == name_id for r in resources)
