"""Resource kinds managed through the lifecycle orchestrator."""

from .instances import InstanceStorageAttachment, InstanceTemplate, NetworkInterface
from .orchestrations import (
    CreateOrchestrationInput,
    InstanceObject,
    Orchestration,
    OrchestrationDesiredState,
    OrchestrationsClient,
    OrchestrationStatus,
    StorageVolumeObject,
    StorageVolumeTemplate,
    UnmodelledObject,
    UpdateOrchestrationInput,
)
from .storage_attachments import (
    CreateStorageAttachmentInput,
    StorageAttachment,
    StorageAttachmentsClient,
    StorageAttachmentState,
)

__all__ = [
    "CreateOrchestrationInput",
    "CreateStorageAttachmentInput",
    "InstanceObject",
    "InstanceStorageAttachment",
    "InstanceTemplate",
    "NetworkInterface",
    "Orchestration",
    "OrchestrationDesiredState",
    "OrchestrationStatus",
    "OrchestrationsClient",
    "StorageAttachment",
    "StorageAttachmentState",
    "StorageAttachmentsClient",
    "StorageVolumeObject",
    "StorageVolumeTemplate",
    "UnmodelledObject",
    "UpdateOrchestrationInput",
]
