"""Representation of the rendered Kubernetes manifests created by `helm template`.

Each rendered document is kept in two forms: a typed object from
`helm_verify.objects` when the kind is modelled, and the untyped tree exactly
as parsed from YAML. Queries and comparisons work on the untyped tree so that
they keep working for kinds and fields the typed layer does not know about.

```python
from helm_verify.manifest import Manifests

manifests = Manifests.parse(await helm.template_output())
deployment = manifests.get_deployment("my-app")
print(deployment.spec.replicas)

for workload in manifests.find_all_workloads():
    result = workload.verify_checksum_annotations()
    assert result.success, result.message
```

It is expected that chart tests wrap `Manifests` with helpers that know about
the specific objects rendered by the chart under test.
"""

from collections.abc import Callable, Iterator
import copy
from dataclasses import dataclass
import logging
from pathlib import Path
import re
from typing import Any, TypeVar

import aiofiles
import yaml

from .exceptions import (
    AmbiguousMatchError,
    InputException,
    ObjectNotFoundError,
    TypedObjectError,
)
from .objects import (
    APPS_API,
    BATCH_API,
    CORE_API,
    NETWORKING_API,
    ConfigMap,
    CronJob,
    DaemonSet,
    Deployment,
    Ingress,
    Job,
    KubernetesObject,
    PersistentVolumeClaim,
    Secret,
    Service,
    ServiceAccount,
    StatefulSet,
    parse_raw_obj,
)
from .workload import Workload, check_kind, is_workload_kind

__all__ = [
    "RenderedObject",
    "Manifests",
]

_LOGGER = logging.getLogger(__name__)

# `helm template` emits a separator line before every document
DOCUMENT_SEPARATOR = re.compile(r"^---[ \t]*$", re.MULTILINE)

WORKLOADS_URL = "https://kubernetes.io/docs/concepts/workloads"

_T = TypeVar("_T", bound=KubernetesObject)


@dataclass(frozen=True, eq=False)
class RenderedObject:
    """A single rendered Kubernetes document."""

    raw: dict[str, Any]
    """The untyped tree of the document.

    This is the parsed tree itself, not a copy. Mutating it changes the
    result of later queries and comparisons.
    """

    typed_result: KubernetesObject | TypedObjectError
    """The typed object, or the error from parsing it."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "RenderedObject":
        """Parse a RenderedObject from a raw kubernetes object."""
        typed_result: KubernetesObject | TypedObjectError
        try:
            typed_result = parse_raw_obj(copy.deepcopy(doc))
        except TypedObjectError as err:
            _LOGGER.debug("No typed object for document: %s", err)
            typed_result = err
        return cls(raw=doc, typed_result=typed_result)

    @property
    def api_version(self) -> str | None:
        """The apiVersion of the object."""
        return self.raw.get("apiVersion")

    @property
    def kind(self) -> str | None:
        """The kind of the object."""
        return self.raw.get("kind")

    @property
    def name(self) -> str | None:
        """The metadata.name of the object."""
        if isinstance(metadata := self.raw.get("metadata"), dict):
            return metadata.get("name")
        return None

    @property
    def typed(self) -> KubernetesObject:
        """The typed object, raising the parse error if there is none."""
        if isinstance(self.typed_result, TypedObjectError):
            raise self.typed_result
        return self.typed_result

    @property
    def typed_error(self) -> TypedObjectError | None:
        """The error from parsing the typed object, if any."""
        if isinstance(self.typed_result, TypedObjectError):
            return self.typed_result
        return None

    def __eq__(self, other: object) -> bool:
        """Compare the untyped trees of the documents."""
        if not isinstance(other, RenderedObject):
            return NotImplemented
        return self.raw == other.raw

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        """Render as a debug string."""
        return f"{self.api_version} {self.kind} {self.name}"


def _parse_segment(segment: str) -> dict[str, Any] | None:
    """Parse a single YAML document, returning None for an empty document."""
    try:
        doc = yaml.safe_load(segment)
    except yaml.YAMLError as err:
        raise InputException(f"Unable to parse rendered document: {err}") from err
    if doc is None:
        return None
    if not isinstance(doc, dict):
        raise InputException(
            f"Rendered document was not a dictionary: {type(doc)}: {doc}"
        )
    return doc


class Manifests:
    """An ordered collection of rendered Kubernetes objects."""

    def __init__(self, objects: list[RenderedObject]) -> None:
        """Initialize Manifests."""
        self._objects = objects

    @classmethod
    def parse(cls, content: str) -> "Manifests":
        """Parse the output of `helm template` into Manifests.

        The content before the first document separator is discarded.
        """
        segments = DOCUMENT_SEPARATOR.split(content)
        if preamble := _strip_comments(segments[0]):
            _LOGGER.warning(
                "Ignoring content before the first document separator: %s", preamble
            )
        objects = []
        for segment in segments[1:]:
            if (doc := _parse_segment(segment)) is None:
                continue
            objects.append(RenderedObject.parse_doc(doc))
        _LOGGER.debug("Parsed %d rendered objects", len(objects))
        return cls(objects)

    @classmethod
    async def from_file(cls, path: Path) -> "Manifests":
        """Parse a YAML file containing any number of Kubernetes objects."""
        async with aiofiles.open(str(path)) as manifest_file:
            content = await manifest_file.read()
        return cls.parse(content)

    @property
    def objects(self) -> list[RenderedObject]:
        """All rendered objects in document order."""
        return list(self._objects)

    def __iter__(self) -> Iterator[RenderedObject]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def __eq__(self, other: object) -> bool:
        """Compare the rendered objects in order."""
        if not isinstance(other, Manifests):
            return NotImplemented
        return self._objects == other._objects

    __hash__ = None  # type: ignore[assignment]

    def find_all(
        self, predicate: Callable[[RenderedObject], bool]
    ) -> list[RenderedObject]:
        """Return all the rendered objects matching the predicate."""
        return [obj for obj in self._objects if predicate(obj)]

    def find_one(
        self, predicate: Callable[[RenderedObject], bool]
    ) -> RenderedObject | None:
        """Return the one rendered object matching the predicate, if any.

        Raises AmbiguousMatchError if more than one object matches. Use
        `find_all` when there is no strict expectation about the count.
        """
        objects = self.find_all(predicate)
        if len(objects) > 1:
            raise AmbiguousMatchError(
                "Expected at most one rendered Kubernetes object to match the "
                f"provided predicate, but found {len(objects)}"
            )
        return next(iter(objects), None)

    def get_one(self, predicate: Callable[[RenderedObject], bool]) -> RenderedObject:
        """Return the one rendered object matching the predicate.

        Raises ObjectNotFoundError if no object matches and AmbiguousMatchError
        if more than one object matches.
        """
        if (obj := self.find_one(predicate)) is None:
            raise ObjectNotFoundError(
                "No rendered Kubernetes object matches the provided predicate"
            )
        return obj

    def get_object(self, api_version: str, kind: str, name: str) -> RenderedObject:
        """Return the one rendered object with the apiVersion, kind and name."""
        try:
            return self.get_one(
                lambda obj: obj.api_version == api_version
                and obj.kind == kind
                and obj.name == name
            )
        except ObjectNotFoundError as err:
            raise ObjectNotFoundError(
                f"No rendered Kubernetes object {api_version} {kind} '{name}'"
            ) from err

    def _get_typed(self, api_version: str, name: str, cls: type[_T]) -> _T:
        """Return the typed object for the apiVersion, kind and name."""
        typed = self.get_object(api_version, cls.kind, name).typed
        if not isinstance(typed, cls):
            raise InputException(
                f"Expected {cls.kind} '{name}' but found {type(typed).__name__}"
            )
        return typed

    # Not intended to be exhaustive, use get_object for other kinds.

    def get_deployment(self, name: str) -> Deployment:
        return self._get_typed(APPS_API, name, Deployment)

    def get_stateful_set(self, name: str) -> StatefulSet:
        return self._get_typed(APPS_API, name, StatefulSet)

    def get_daemon_set(self, name: str) -> DaemonSet:
        return self._get_typed(APPS_API, name, DaemonSet)

    def get_job(self, name: str) -> Job:
        return self._get_typed(BATCH_API, name, Job)

    def get_cron_job(self, name: str) -> CronJob:
        return self._get_typed(BATCH_API, name, CronJob)

    def get_ingress(self, name: str) -> Ingress:
        return self._get_typed(NETWORKING_API, name, Ingress)

    def get_service(self, name: str) -> Service:
        return self._get_typed(CORE_API, name, Service)

    def get_service_account(self, name: str) -> ServiceAccount:
        return self._get_typed(CORE_API, name, ServiceAccount)

    def get_config_map(self, name: str) -> ConfigMap:
        return self._get_typed(CORE_API, name, ConfigMap)

    def get_secret(self, name: str) -> Secret:
        return self._get_typed(CORE_API, name, Secret)

    def get_persistent_volume_claim(self, name: str) -> PersistentVolumeClaim:
        return self._get_typed(CORE_API, name, PersistentVolumeClaim)

    def get_config_map_value(self, name: str, key: str) -> str:
        """Return a value from the data of a ConfigMap."""
        if not (data := self.get_config_map(name).data):
            raise InputException(f"ConfigMap {name} has no data")
        if (value := data.get(key)) is None:
            raise InputException(f"ConfigMap {name} has no data under key {key}")
        return value

    def get_secret_value(self, name: str, key: str) -> str:
        """Return a value from the data of a Secret, decoded as UTF-8."""
        secret = self.get_secret(name)
        if not secret.data and not secret.string_data:
            raise InputException(f"Secret {name} has no data")
        if secret.data and (value := secret.data.get(key)) is not None:
            return value.decode("utf-8")
        if secret.string_data and (text := secret.string_data.get(key)) is not None:
            return text
        raise InputException(f"Secret {name} has no data under key {key}")

    def find_all_workloads(self) -> list[Workload]:
        """Return all the rendered workload objects."""
        return [Workload(obj) for obj in self._objects if is_workload_kind(obj.kind)]

    def find_workload(self, kind: str, name: str) -> Workload | None:
        """Return the workload with the kind and name, if any.

        Raises UnrecognizedKindError if the kind is not a workload kind.
        """
        check_kind(kind, name)
        if (obj := self.find_one(lambda o: o.kind == kind and o.name == name)) is None:
            return None
        return Workload(obj)

    def get_workload(self, kind: str, name: str) -> Workload:
        """Return the workload with the kind and name."""
        if (workload := self.find_workload(kind, name)) is None:
            raise ObjectNotFoundError(
                f"No rendered Kubernetes workload object {kind} '{name}' "
                f"(workloads are defined here: {WORKLOADS_URL})"
            )
        return workload


def _strip_comments(segment: str) -> str:
    """Return the segment without blank and comment lines."""
    lines = [
        line
        for line in segment.splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]
    return "\n".join(lines)
