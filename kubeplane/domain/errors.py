"""
Domain Errors

Architectural Intent:
- Single classified error hierarchy shared by adapters, managers and callers
- Every error carries the operation name, the target identifier and the
  provider-reported message, so callers can tell an invalid request apart
  from an unavailable provider or a still-converging operation

Design Decisions:
- Validation errors (scaling bounds, ambiguous names) are raised before any
  remote call and are never retried here
- ClusterBusyError is the only error flagged as safe to retry after backoff
"""

from __future__ import annotations
from typing import Any, Optional


class ClusterControlError(Exception):
    """Base class for all classified control-plane errors."""

    kind = "ClusterControlError"
    retryable = False

    def __init__(
        self,
        message: str,
        operation: str = "",
        target: Any = None,
        provider_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.target = target
        self.provider_message = provider_message

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "operation": self.operation,
            "target": str(self.target) if self.target is not None else None,
            "provider_message": self.provider_message,
            "retryable": self.retryable,
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.target is not None:
            parts.append(f"target={self.target}")
        if self.provider_message:
            parts.append(f"provider={self.provider_message}")
        return " ".join(parts)


class NotFoundError(ClusterControlError):
    kind = "NotFound"


class AmbiguousNameError(ClusterControlError):
    kind = "AmbiguousName"

    def __init__(self, message: str, matches: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.matches = matches


class InvalidScalingBoundsError(ClusterControlError):
    kind = "InvalidScalingBounds"


class InvalidTransitionError(ClusterControlError):
    kind = "InvalidTransition"


class ClusterBusyError(ClusterControlError):
    kind = "ClusterBusy"
    retryable = True


class ProvisioningTimeoutError(ClusterControlError):
    """The poll deadline elapsed; the operation may still be in flight."""

    kind = "ProvisioningTimeout"

    def __init__(
        self, message: str, last_observed: Any = None, **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)
        self.last_observed = last_observed


class ProviderRejectedError(ClusterControlError):
    """The provider refused or failed a remote call.

    code holds the provider's own error code when it reports one.
    """

    kind = "ProviderRejected"

    def __init__(self, message: str, code: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.code = code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["code"] = self.code
        return data


class PartialFailureError(ClusterControlError):
    """Cluster creation succeeded but requested node groups did not.

    The cluster is left ACTIVE; nothing is rolled back.
    """

    kind = "PartialFailure"

    def __init__(
        self,
        message: str,
        cluster: Any = None,
        failed_node_groups: tuple = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.cluster = cluster
        self.failed_node_groups = failed_node_groups

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["failed_node_groups"] = [str(iid) for iid in self.failed_node_groups]
        return data


class RemoteExecutionError(ClusterControlError):
    kind = "RemoteExecution"
