from dataclasses import dataclass
from kubeplane.domain.value_objects.iid import IID


@dataclass(frozen=True)
class KeyValue:
    """
    Value Object for free-form provider extras.
    """
    key: str
    value: str = ""

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("KeyValue key cannot be empty")


@dataclass(frozen=True)
class NetworkInfo:
    """
    Value Object referencing existing network resources of a cluster.
    """
    vpc_iid: IID = IID()
    subnet_iids: tuple[IID, ...] = ()
    security_group_iids: tuple[IID, ...] = ()
    key_value_list: tuple[KeyValue, ...] = ()

    def __post_init__(self) -> None:
        # lists are accepted for convenience and frozen here
        for name in ("subnet_iids", "security_group_iids", "key_value_list"):
            value = getattr(self, name)
            if isinstance(value, list):
                object.__setattr__(self, name, tuple(value))
