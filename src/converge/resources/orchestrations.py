"""Orchestrations: composite resources that provision a set of objects.

An orchestration carries a list of objects, each with a ``type`` and a
``template`` whose shape depends on that type. The orchestration converges
when its status reaches the ``desired_state`` the server echoes back; while
it is in ``terminal_error``, the failing object's health carries the real
diagnostic, so that is what gets reported.

Object templates are a discriminated union on ``type``. Identifier
translation is dispatched per variant; each template kind owns its own
field list.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Discriminator, Field, Tag, field_validator

from ..config import (
    MAX_OBJECT_LABEL_LENGTH,
    MAX_ORCHESTRATION_OBJECTS,
    ORCHESTRATION_ACTIVE_TIMEOUT_SECONDS,
    ORCHESTRATION_DELETE_TIMEOUT_SECONDS,
    ORCHESTRATION_POLL_INTERVAL_SECONDS,
)
from ..errors import ResourceFailed
from ..lifecycle import Lifecycle, ResourceClient, ResourceKind
from ..naming import NameTranslator
from ..states import StateMachine, StatusClass
from ..waiter import WaitSpec
from .instances import InstanceTemplate, translate_instance_template


class OrchestrationDesiredState(str, Enum):
    """States a caller can ask an orchestration to reach.

    * active: creates all the objects defined in the orchestration.
    * inactive: registers the orchestration without creating its objects.
    * suspend: suspends all non-persistent objects.
    """

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPEND = "suspend"


class OrchestrationStatus(str, Enum):
    """Statuses reported by the server for orchestrations and their objects."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPEND = "suspend"
    ACTIVATING = "activating"
    DELETING = "deleting"
    ERROR = "terminal_error"
    STOPPING = "stopping"
    SUSPENDING = "suspending"
    STARTING = "starting"
    DEACTIVATING = "deactivating"
    SUSPENDED = "suspended"


# =============================================================================
# Object models
# =============================================================================


class Health(BaseModel):
    """Current state of an orchestration object."""

    model_config = {"extra": "ignore"}

    status: str | None = None
    cause: str | None = None
    detail: str | None = None
    error: str | None = None


class Relationship(BaseModel):
    """``depends`` relationship: the target objects are created first."""

    model_config = {"extra": "ignore"}

    type: Literal["depends"] = "depends"
    targets: list[str]


class StorageVolumeTemplate(BaseModel):
    """Desired configuration of a storage volume created by an orchestration."""

    model_config = {"extra": "allow"}

    name: str | None = None
    size: str | None = None
    bootable: bool | None = None
    imagelist: str | None = None
    snapshot: str | None = None


def translate_storage_volume_template(
    translator: NameTranslator, template: StorageVolumeTemplate
) -> StorageVolumeTemplate:
    return template.model_copy(
        update={
            "name": translator.name(template.name),
            "imagelist": translator.name(template.imagelist),
            "snapshot": translator.name(template.snapshot),
        }
    )


class _ObjectBase(BaseModel):
    model_config = {"extra": "ignore"}

    label: Annotated[str, Field(min_length=1, max_length=MAX_OBJECT_LABEL_LENGTH)]
    orchestration: str | None = None
    name: str | None = None
    account: str | None = None
    description: str | None = None
    desired_state: str | None = None
    persistent: bool | None = None
    relationships: list[Relationship] | None = None
    health: Health | None = None
    version: int | None = None

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        if " " in v:
            raise ValueError("label cannot contain spaces")
        return v


class InstanceObject(_ObjectBase):
    type: Literal["Instance"] = "Instance"
    template: InstanceTemplate


class StorageVolumeObject(_ObjectBase):
    type: Literal["StorageVolume"] = "StorageVolume"
    template: StorageVolumeTemplate


OrchestrationObject = Annotated[
    InstanceObject | StorageVolumeObject,
    Field(discriminator="type"),
]


class UnmodelledObject(_ObjectBase):
    """Reported object of a type without a template model here.

    The template is carried as-is; only the object's own name is translated.
    """

    type: str
    template: dict[str, Any] = Field(default_factory=dict)


_MODELLED_OBJECT_TYPES = frozenset({"Instance", "StorageVolume"})


def _reported_object_tag(value: Any) -> str:
    object_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return object_type if object_type in _MODELLED_OBJECT_TYPES else "unmodelled"


# Servers may report object types this client cannot submit
ReportedOrchestrationObject = Annotated[
    Union[
        Annotated[InstanceObject, Tag("Instance")],
        Annotated[StorageVolumeObject, Tag("StorageVolume")],
        Annotated[UnmodelledObject, Tag("unmodelled")],
    ],
    Discriminator(_reported_object_tag),
]

AnyOrchestrationObject = InstanceObject | StorageVolumeObject | UnmodelledObject


def translate_object(
    translator: NameTranslator, obj: AnyOrchestrationObject
) -> AnyOrchestrationObject:
    """Translate identifiers of one object, delegating its template by variant."""
    match obj:
        case InstanceObject():
            template = translate_instance_template(translator, obj.template)
        case StorageVolumeObject():
            template = translate_storage_volume_template(translator, obj.template)
        case UnmodelledObject():
            template = obj.template
        case _:
            raise TypeError(f"Unsupported orchestration object: {type(obj).__name__}")

    return obj.model_copy(
        update={
            "name": translator.name(obj.name),
            "orchestration": translator.name(obj.orchestration),
            "template": template,
        }
    )


# =============================================================================
# Orchestration models
# =============================================================================


class Orchestration(BaseModel):
    """An existing orchestration as reported by the server."""

    model_config = {"extra": "ignore"}

    name: str
    status: str | None = None
    desired_state: str | None = None
    objects: list[ReportedOrchestrationObject] = Field(default_factory=list)
    account: str | None = None
    description: str | None = None
    id: str | None = None
    tags: list[str] | None = None
    time_audited: str | None = None
    time_created: str | None = None
    time_updated: str | None = None
    uri: str | None = None
    user: str | None = None
    version: int | None = None

    def failing_object(self) -> AnyOrchestrationObject | None:
        """First object whose health reports a terminal error, if any."""
        for obj in self.objects:
            if obj.health is not None and obj.health.status == OrchestrationStatus.ERROR.value:
                return obj
        return None


class CreateOrchestrationInput(BaseModel):
    """Desired definition of an orchestration."""

    model_config = {"extra": "forbid"}

    name: Annotated[str, Field(min_length=1)]
    desired_state: OrchestrationDesiredState
    objects: Annotated[
        list[OrchestrationObject], Field(min_length=1, max_length=MAX_ORCHESTRATION_OBJECTS)
    ]
    account: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    version: int | None = None

    @field_validator("objects")
    @classmethod
    def validate_unique_labels(
        cls, v: list[InstanceObject | StorageVolumeObject]
    ) -> list[InstanceObject | StorageVolumeObject]:
        labels = [obj.label for obj in v]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ValueError(f"object labels must be unique: {duplicates}")
        return v


class UpdateOrchestrationInput(CreateOrchestrationInput):
    """Replacement definition of an existing orchestration."""

    pass


def translate_orchestration(translator: NameTranslator, orchestration: Any) -> Any:
    """Translate an orchestration input or result; objects inherit its name."""
    objects = []
    for obj in orchestration.objects:
        if obj.orchestration is None and translator.qualifying:
            obj = obj.model_copy(update={"orchestration": orchestration.name})
        objects.append(translate_object(translator, obj))

    return orchestration.model_copy(
        update={
            "name": translator.name(orchestration.name),
            "objects": objects,
        }
    )


# =============================================================================
# Client
# =============================================================================

_ORCHESTRATION = "orchestration"

ORCHESTRATION_KIND = ResourceKind(
    description=_ORCHESTRATION,
    container_path="/platform/v1/orchestration/",
    root_path="/platform/v1/orchestration",
    result_model=Orchestration,
    ready=StateMachine(
        kind=_ORCHESTRATION,
        table={
            OrchestrationStatus.ERROR.value: StatusClass.FAILED,
            OrchestrationStatus.ACTIVATING.value: StatusClass.TRANSIENT,
            OrchestrationStatus.STOPPING.value: StatusClass.TRANSIENT,
            OrchestrationStatus.SUSPENDING.value: StatusClass.TRANSIENT,
            OrchestrationStatus.DEACTIVATING.value: StatusClass.TRANSIENT,
            # Steady states converge only as the desired state
            OrchestrationStatus.SUSPENDED.value: StatusClass.TRANSIENT,
        },
        desired_equivalents={
            OrchestrationDesiredState.SUSPEND.value: frozenset(
                {OrchestrationStatus.SUSPEND.value, OrchestrationStatus.SUSPENDED.value}
            ),
        },
    ),
    deleted=StateMachine(
        kind=_ORCHESTRATION,
        table={
            OrchestrationStatus.ERROR.value: StatusClass.FAILED,
            OrchestrationStatus.STOPPING.value: StatusClass.TRANSIENT,
            OrchestrationStatus.DELETING.value: StatusClass.TRANSIENT,
            OrchestrationStatus.ACTIVE.value: StatusClass.TRANSIENT,
        },
    ),
    ready_wait=WaitSpec(
        poll_interval=ORCHESTRATION_POLL_INTERVAL_SECONDS,
        timeout=ORCHESTRATION_ACTIVE_TIMEOUT_SECONDS,
    ),
    delete_wait=WaitSpec(
        poll_interval=ORCHESTRATION_POLL_INTERVAL_SECONDS,
        timeout=ORCHESTRATION_DELETE_TIMEOUT_SECONDS,
    ),
    delete_query="?terminate=true",
)


class OrchestrationsClient(ResourceClient):
    """Lifecycle operations for orchestrations."""

    kind = ORCHESTRATION_KIND

    def qualify_input(self, payload: CreateOrchestrationInput) -> CreateOrchestrationInput:
        return translate_orchestration(NameTranslator.qualifier(self.scope), payload)

    def unqualify_result(self, result: Orchestration) -> Orchestration:
        return translate_orchestration(NameTranslator.unqualifier(self.scope), result)

    def desired_of(self, result: Orchestration) -> str | None:
        return result.desired_state

    def failure_of(self, result: Orchestration, lifecycle: Lifecycle) -> ResourceFailed:
        failing = result.failing_object()
        if failing is not None and failing.health is not None:
            return ResourceFailed(
                self.kind.description,
                lifecycle.name,
                result.status or OrchestrationStatus.ERROR.value,
                cause=failing.health.cause,
                detail=failing.health.detail,
                error=failing.health.error,
                child=self._object_name(failing),
                elapsed=lifecycle.elapsed,
            )
        return super().failure_of(result, lifecycle)

    def _object_name(self, obj: AnyOrchestrationObject) -> str:
        if obj.name:
            return NameTranslator.unqualifier(self.scope).name(obj.name)
        return obj.label

    async def create_orchestration(
        self,
        payload: CreateOrchestrationInput,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Orchestration:
        """Create an orchestration and wait for it to reach its desired state.

        If it fails to converge, the orchestration is terminated before the
        error is raised.
        """
        return await self.create(
            payload, poll_interval=poll_interval, timeout=timeout, cancel=cancel
        )

    async def get_orchestration(self, name: str) -> Orchestration:
        return await self.get(name)

    async def update_orchestration(
        self,
        name: str,
        payload: UpdateOrchestrationInput,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Orchestration:
        """Replace an orchestration's definition and wait for it to converge."""
        return await self.update(
            name, payload, poll_interval=poll_interval, timeout=timeout, cancel=cancel
        )

    async def delete_orchestration(
        self,
        name: str,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Terminate an orchestration and wait until it no longer exists."""
        await self.delete(name, poll_interval=poll_interval, timeout=timeout, cancel=cancel)
