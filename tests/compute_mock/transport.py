"""In-memory compute API behind the Transport interface.

Objects are stored as plain JSON dicts keyed by object path
(root path + qualified name). Each GET consumes one entry of the object's
status script, so a test can play back the exact sequence of statuses the
server would report while a resource converges.
"""

from __future__ import annotations

import copy
import json
import uuid
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any

from converge.errors import ResourceNotFound, TransportError

# Script entry that removes the object; the GET consuming it gets a 404
GONE = object()


@dataclass(frozen=True)
class RecordedRequest:
    """A request received by the mock."""

    method: str
    path: str
    body: dict[str, Any] | None


class MockComputeTransport:
    """Mock compute API implementing ``converge.transport.Transport``.

    Script entries are applied on each GET:

    * ``str``: set ``status_field`` to that value
    * ``dict``: merged into the stored object (e.g. to set child health)
    * ``GONE``: the object is removed and the GET raises ResourceNotFound

    Once a script is exhausted the object keeps its last state. Scripts
    registered against a container path are handed to the next object
    created with POST to that container.
    """

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.requests: list[RecordedRequest] = []
        self._scripts: dict[str, deque[Any]] = {}
        self._status_fields: dict[str, str] = {}
        self._failures: dict[tuple[str, str], deque[Exception]] = defaultdict(deque)
        self._create_defaults: dict[str, dict[str, Any]] = {}

    # -------------------------------------------------------------------------
    # Test setup
    # -------------------------------------------------------------------------

    def put_object(self, path: str, obj: dict[str, Any]) -> None:
        """Seed an existing object at ``path``."""
        self.objects[path] = copy.deepcopy(obj)

    def script_statuses(
        self, path: str, statuses: list[Any], status_field: str = "status"
    ) -> None:
        """Play ``statuses`` back on successive GETs of ``path``."""
        self._scripts[path] = deque(statuses)
        self._status_fields[path] = status_field

    def set_create_defaults(self, container_path: str, fields: dict[str, Any]) -> None:
        """Merge ``fields`` into every object created under ``container_path``."""
        self._create_defaults[container_path] = dict(fields)

    def fail_next(self, method: str, path: str, error: Exception) -> None:
        """Raise ``error`` on the next ``method`` request to ``path``."""
        self._failures[(method, path)].append(error)

    # -------------------------------------------------------------------------
    # Assertions
    # -------------------------------------------------------------------------

    def count(self, method: str, path: str | None = None) -> int:
        return sum(
            1
            for request in self.requests
            if request.method == method and (path is None or request.path == path)
        )

    def last(self, method: str) -> RecordedRequest:
        for request in reversed(self.requests):
            if request.method == method:
                return request
        raise AssertionError(f"No {method} request recorded")

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def send(self, method: str, path: str, body: bytes | None = None) -> bytes:
        payload = json.loads(body) if body else None
        self.requests.append(RecordedRequest(method, path, payload))

        pending = self._failures.get((method, path))
        if pending:
            raise pending.popleft()

        object_path = path.split("?", 1)[0]

        match method:
            case "POST":
                return self._encode(self._create(object_path, payload or {}))
            case "GET":
                return self._encode(self._get(object_path))
            case "PUT":
                return self._encode(self._replace(object_path, payload or {}))
            case "DELETE":
                self._delete(object_path)
                return b""
            case _:
                raise TransportError(
                    f"{method} {path}: method not allowed", method=method, path=path, status_code=405
                )

    def _create(self, container_path: str, payload: dict[str, Any]) -> dict[str, Any]:
        obj = copy.deepcopy(self._create_defaults.get(container_path, {}))
        obj.update(copy.deepcopy(payload))
        if not obj.get("name"):
            # Attachments are named by the server after the instance
            obj["name"] = f"{obj.get('instance_name', '')}/{uuid.uuid4()}"

        object_path = container_path.rstrip("/") + obj["name"]
        if object_path in self.objects:
            raise TransportError(
                f"POST {container_path}: {obj['name']} already exists",
                method="POST",
                path=container_path,
                status_code=409,
            )

        if container_path in self._scripts:
            self._scripts[object_path] = self._scripts.pop(container_path)
            self._status_fields[object_path] = self._status_fields.pop(container_path)

        self.objects[object_path] = obj
        return obj

    def _get(self, path: str) -> dict[str, Any]:
        if path not in self.objects:
            raise self._not_found("GET", path)

        script = self._scripts.get(path)
        if script:
            entry = script.popleft()
            if entry is GONE:
                del self.objects[path]
                raise self._not_found("GET", path)
            if isinstance(entry, dict):
                self.objects[path].update(copy.deepcopy(entry))
            else:
                self.objects[path][self._status_fields[path]] = entry

        return self.objects[path]

    def _replace(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        if path not in self.objects:
            raise self._not_found("PUT", path)
        self.objects[path].update(copy.deepcopy(payload))
        return self.objects[path]

    def _delete(self, path: str) -> None:
        if path not in self.objects:
            raise self._not_found("DELETE", path)
        # Without a script the object disappears at once
        if not self._scripts.get(path):
            del self.objects[path]

    @staticmethod
    def _not_found(method: str, path: str) -> ResourceNotFound:
        return ResourceNotFound(
            f"{method} {path}: not found", method=method, path=path, status_code=404
        )

    @staticmethod
    def _encode(obj: dict[str, Any]) -> bytes:
        return json.dumps(obj).encode("utf-8")
