"""Instance templates embedded in orchestration objects.

Instances are not managed directly by this package; they are created by
orchestrations. The template model and its identifier fields live here so
the orchestration kind can delegate qualification of ``Instance`` objects
to the instance kind instead of reaching into its fields itself.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field

from ..naming import NameTranslator, Scope

# Markers for identifiers embedded in shared-network NAT entries
IP_RESERVATION_MARKER = "ipreservation:"


class InstanceStorageAttachment(BaseModel):
    """Volume attached to an instance at launch."""

    model_config = {"extra": "allow"}

    index: Annotated[int, Field(ge=1, le=10)]
    volume: str


class NetworkInterface(BaseModel):
    """One entry of the instance ``networking`` map (keyed by interface, e.g. eth0).

    An interface with ``ip_network`` set is on an IP network; otherwise it is
    on the shared network. NAT entries are plain reservation names on IP
    networks and ``ipreservation:<name>`` / ``ippool:<pool>`` on the shared
    network.
    """

    model_config = {"extra": "allow"}

    ip_network: str | None = None
    vnic: str | None = None
    vnicsets: list[str] | None = None
    seclists: list[str] | None = None
    nat: str | list[str] | None = None


class InstanceTemplate(BaseModel):
    """Desired configuration of an instance created by an orchestration.

    Only the fields holding identifiers are modelled explicitly; the rest of
    the instance attributes (shape, label, attributes, ...) pass through.
    """

    model_config = {"extra": "allow"}

    name: str | None = None
    shape: str | None = None
    imagelist: str | None = None
    sshkeys: list[str] | None = None
    storage_attachments: list[InstanceStorageAttachment] | None = None
    networking: dict[str, NetworkInterface] | None = None


def _translate_nat(
    translator: NameTranslator, interface: NetworkInterface
) -> str | list[str] | None:
    nat = interface.nat
    if nat is None:
        return None
    if isinstance(nat, str):
        return translator.prefixed(nat, IP_RESERVATION_MARKER)
    if interface.ip_network:
        return translator.names(nat)
    return [translator.prefixed(entry, IP_RESERVATION_MARKER) for entry in nat]


def translate_networking(
    translator: NameTranslator, networking: dict[str, NetworkInterface] | None
) -> dict[str, NetworkInterface] | None:
    if networking is None:
        return None
    return {
        interface_name: interface.model_copy(
            update={
                "ip_network": translator.name(interface.ip_network),
                "vnic": translator.name(interface.vnic),
                "vnicsets": translator.names(interface.vnicsets),
                "seclists": translator.names(interface.seclists),
                "nat": _translate_nat(translator, interface),
            }
        )
        for interface_name, interface in networking.items()
    }


def translate_instance_template(
    translator: NameTranslator, template: InstanceTemplate
) -> InstanceTemplate:
    attachments = None
    if template.storage_attachments is not None:
        attachments = [
            attachment.model_copy(update={"volume": translator.name(attachment.volume)})
            for attachment in template.storage_attachments
        ]

    return template.model_copy(
        update={
            "name": translator.name(template.name),
            "imagelist": translator.name(template.imagelist),
            "sshkeys": translator.names(template.sshkeys),
            "storage_attachments": attachments,
            "networking": translate_networking(translator, template.networking),
        }
    )


def qualify_instance_template(scope: Scope, template: InstanceTemplate) -> InstanceTemplate:
    return translate_instance_template(NameTranslator.qualifier(scope), template)


def unqualify_instance_template(scope: Scope, template: InstanceTemplate) -> InstanceTemplate:
    return translate_instance_template(NameTranslator.unqualifier(scope), template)
