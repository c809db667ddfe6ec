"""Client-side reconciliation of eventually-consistent compute resources."""

from .client import ComputeClient
from .config import Config, ConfigurationError
from .errors import (
    CodecError,
    ConvergeError,
    ConvergenceTimeout,
    InvalidResponse,
    ResourceFailed,
    ResourceNotFound,
    RollbackError,
    TransportError,
    UnknownStatus,
    WaitCancelled,
    WaitValidationError,
)
from .lifecycle import Lifecycle, LifecyclePhase, ResourceClient, ResourceKind
from .naming import Scope, qualify, unqualify
from .states import StateMachine, StatusClass
from .waiter import WaitSpec, cancellable, wait_for

__all__ = [
    "CodecError",
    "ComputeClient",
    "Config",
    "ConfigurationError",
    "ConvergeError",
    "ConvergenceTimeout",
    "InvalidResponse",
    "Lifecycle",
    "LifecyclePhase",
    "ResourceClient",
    "ResourceFailed",
    "ResourceKind",
    "ResourceNotFound",
    "RollbackError",
    "Scope",
    "StateMachine",
    "StatusClass",
    "TransportError",
    "UnknownStatus",
    "WaitCancelled",
    "WaitSpec",
    "WaitValidationError",
    "cancellable",
    "qualify",
    "unqualify",
    "wait_for",
]
