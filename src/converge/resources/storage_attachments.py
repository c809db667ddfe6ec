"""Storage volume attachments.

An attachment binds a storage volume to an instance at a device index. Its
name is generated by the server and read back from the create response.
Attachments cannot be modified in place, so only create/get/delete are
exposed.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field

from ..config import (
    STORAGE_ATTACHMENT_DELETE_POLL_INTERVAL_SECONDS,
    STORAGE_ATTACHMENT_DELETE_TIMEOUT_SECONDS,
    STORAGE_ATTACHMENT_READY_POLL_INTERVAL_SECONDS,
    STORAGE_ATTACHMENT_READY_TIMEOUT_SECONDS,
)
from ..lifecycle import ResourceClient, ResourceKind
from ..naming import NameTranslator
from ..states import StateMachine, StatusClass
from ..waiter import WaitSpec


class StorageAttachmentState(str, Enum):
    """Attachment states reported by the server."""

    ATTACHING = "attaching"
    ATTACHED = "attached"
    DETACHING = "detaching"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class StorageAttachment(BaseModel):
    """An existing storage attachment."""

    model_config = {"extra": "ignore"}

    name: str
    index: int | None = None
    instance_name: str | None = None
    storage_volume_name: str | None = None
    state: str | None = None


class CreateStorageAttachmentInput(BaseModel):
    """Attach ``storage_volume_name`` to ``instance_name`` at ``index``.

    An attachment with index 1 is exposed to the instance as /dev/xvdb,
    index 2 as /dev/xvdc, and so on.
    """

    model_config = {"extra": "forbid"}

    index: Annotated[int, Field(ge=1, le=10)]
    instance_name: Annotated[str, Field(min_length=1)]
    storage_volume_name: Annotated[str, Field(min_length=1)]


STORAGE_ATTACHMENT_KIND = ResourceKind(
    description="storage attachment",
    container_path="/storage/attachment/",
    root_path="/storage/attachment",
    result_model=StorageAttachment,
    ready=StateMachine(
        kind="storage attachment",
        table={
            StorageAttachmentState.ATTACHED.value: StatusClass.CONVERGED,
            StorageAttachmentState.ATTACHING.value: StatusClass.TRANSIENT,
            # None of these leads to attached; fail instead of polling to the timeout
            StorageAttachmentState.DETACHING.value: StatusClass.FAILED,
            StorageAttachmentState.UNAVAILABLE.value: StatusClass.FAILED,
            StorageAttachmentState.UNKNOWN.value: StatusClass.FAILED,
        },
    ),
    deleted=StateMachine(
        kind="storage attachment",
        table={state.value: StatusClass.TRANSIENT for state in StorageAttachmentState},
    ),
    ready_wait=WaitSpec(
        poll_interval=STORAGE_ATTACHMENT_READY_POLL_INTERVAL_SECONDS,
        timeout=STORAGE_ATTACHMENT_READY_TIMEOUT_SECONDS,
    ),
    delete_wait=WaitSpec(
        poll_interval=STORAGE_ATTACHMENT_DELETE_POLL_INTERVAL_SECONDS,
        timeout=STORAGE_ATTACHMENT_DELETE_TIMEOUT_SECONDS,
    ),
)


class StorageAttachmentsClient(ResourceClient):
    """Lifecycle operations for storage attachments."""

    kind = STORAGE_ATTACHMENT_KIND

    def qualify_input(self, payload: CreateStorageAttachmentInput) -> CreateStorageAttachmentInput:
        translate = NameTranslator.qualifier(self.scope)
        return payload.model_copy(
            update={
                "instance_name": translate.name(payload.instance_name),
                "storage_volume_name": translate.name(payload.storage_volume_name),
            }
        )

    def unqualify_result(self, result: StorageAttachment) -> StorageAttachment:
        translate = NameTranslator.unqualifier(self.scope)
        return result.model_copy(
            update={
                "name": translate.name(result.name),
                "instance_name": translate.name(result.instance_name),
                "storage_volume_name": translate.name(result.storage_volume_name),
            }
        )

    def status_of(self, result: StorageAttachment) -> str | None:
        return result.state

    async def create_storage_attachment(
        self,
        payload: CreateStorageAttachmentInput,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> StorageAttachment:
        """Attach a volume and wait until the attachment is ``attached``."""
        return await self.create(
            payload, poll_interval=poll_interval, timeout=timeout, cancel=cancel
        )

    async def get_storage_attachment(self, name: str) -> StorageAttachment:
        return await self.get(name)

    async def delete_storage_attachment(
        self,
        name: str,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Detach and wait until the attachment no longer exists."""
        await self.delete(name, poll_interval=poll_interval, timeout=timeout, cancel=cancel)
