"""Verification of rendered workload objects.

A workload is a rendered object of a kind that manages pods. Its pod template
is inspected through the untyped tree of the document, so verification works
for any field present in the rendered output.

The checksum annotation check verifies that a workload has a checksum
annotation on its pod template for every ConfigMap and Secret that the pods
reference, so that the pods are cycled when one of them changes, and that
there are no checksum annotations left over for resources that are no longer
referenced. An annotation covers a resource when the annotation key contains
the resource name. The value of the checksum itself is not verified.
"""

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, ClassVar

from . import nested
from .exceptions import NoContainersError, UnrecognizedKindError
from .objects import Container, parse_container

if TYPE_CHECKING:
    from .manifest import RenderedObject

__all__ = [
    "WORKLOAD_KINDS",
    "Workload",
    "VerifyChecksumAnnotationsResult",
    "check_kind",
    "is_workload_kind",
]

_LOGGER = logging.getLogger(__name__)


WORKLOAD_KINDS = frozenset(
    {"Deployment", "StatefulSet", "ReplicaSet", "Job", "CronJob", "DaemonSet"}
)

# Path to the pod template of each workload kind.
POD_TEMPLATE_PATH = "spec.template"
KINDS_POD_TEMPLATE_PATH = {"CronJob": "spec.jobTemplate.spec.template"}

CHECKSUM = "checksum"


def is_workload_kind(kind: Any) -> bool:
    """Return True if the kind is a workload kind."""
    return isinstance(kind, str) and kind in WORKLOAD_KINDS


def check_kind(kind: Any, *context: Any) -> None:
    """Raise UnrecognizedKindError if the kind is not a workload kind."""
    if not is_workload_kind(kind):
        suffix = ""
        if context:
            suffix = f" ({', '.join(str(item) for item in context)})"
        raise UnrecognizedKindError(
            f"Kind '{kind}' is not recognised as a workload kind.{suffix}"
        )


@dataclass(frozen=True)
class VerifyChecksumAnnotationsResult:
    """Outcome of verifying the checksum annotations of a workload."""

    SUCCESS: ClassVar["VerifyChecksumAnnotationsResult"]

    success: bool
    """True when no problems were found."""

    message: str
    """All problems found, one per line, or empty on success."""


VerifyChecksumAnnotationsResult.SUCCESS = VerifyChecksumAnnotationsResult(True, "")


def _add_name(names: dict[str, None], name: Any) -> None:
    """Record a referenced resource name, keeping discovery order."""
    if isinstance(name, str):
        names[name] = None


def _dicts(items: list[Any] | None) -> list[dict[str, Any]]:
    """Return the mappings in a list, ignoring anything malformed."""
    return [item for item in items or () if isinstance(item, dict)]


class Workload:
    """A rendered object of a kind that manages pods."""

    def __init__(self, rendered: "RenderedObject") -> None:
        """Initialize Workload, raising UnrecognizedKindError for other kinds."""
        check_kind(rendered.kind, rendered.name)
        self._rendered = rendered

    @property
    def rendered(self) -> "RenderedObject":
        """The underlying rendered object."""
        return self._rendered

    @property
    def kind(self) -> str:
        """The kind of the workload."""
        return str(self._rendered.kind)

    @property
    def name(self) -> str | None:
        """The name of the workload."""
        return self._rendered.name

    def _pod_template_path(self, path: str) -> str:
        prefix = KINDS_POD_TEMPLATE_PATH.get(self.kind, POD_TEMPLATE_PATH)
        return f"{prefix}.{path}"

    def _get(self, path: str) -> Any | None:
        return nested.get_nested(self._rendered.raw, self._pod_template_path(path))

    def raw_containers(self) -> list[Any]:
        """Return the untyped containers of the pod template."""
        path = self._pod_template_path("spec.containers")
        if (containers := nested.get_nested_list(self._rendered.raw, path)) is None:
            raise NoContainersError(
                f"Workload {self.name} does not define any containers"
            )
        return containers

    def containers(self) -> list[Container]:
        """Return the typed containers of the pod template."""
        return [
            parse_container(container) for container in _dicts(self.raw_containers())
        ]

    def annotations(self) -> dict[str, Any]:
        """Return a copy of the annotations of the pod template."""
        annotations = self._get("metadata.annotations")
        if isinstance(annotations, dict):
            return dict(annotations)
        return {}

    def volumes(self) -> list[dict[str, Any]]:
        """Return the volumes of the pod template."""
        volumes = self._get("spec.volumes")
        return _dicts(volumes if isinstance(volumes, list) else None)

    def image_pull_secrets(self) -> list[str]:
        """Return the names of the image pull secrets of the pod template."""
        secrets = self._get("spec.imagePullSecrets")
        return [
            name
            for secret in _dicts(secrets if isinstance(secrets, list) else None)
            if isinstance(name := secret.get("name"), str)
        ]

    def _referenced_resources(self) -> tuple[list[str], list[str]]:
        """Return the ConfigMap and Secret names referenced by the pods."""
        config_maps: dict[str, None] = {}
        secrets: dict[str, None] = {}

        containers: list[Any] = []
        for path in ("spec.containers", "spec.initContainers"):
            if isinstance(items := self._get(path), list):
                containers.extend(items)
        for container in _dicts(containers):
            for env in _dicts(nested.get_nested_list(container, "env")):
                _add_name(
                    config_maps,
                    nested.get_nested_str(env, "valueFrom.configMapKeyRef.name"),
                )
                _add_name(
                    secrets, nested.get_nested_str(env, "valueFrom.secretKeyRef.name")
                )
            for env_from in _dicts(nested.get_nested_list(container, "envFrom")):
                _add_name(
                    config_maps, nested.get_nested_str(env_from, "configMapRef.name")
                )
                _add_name(secrets, nested.get_nested_str(env_from, "secretRef.name"))

        for name in self.image_pull_secrets():
            _add_name(secrets, name)

        for volume in self.volumes():
            _add_name(config_maps, nested.get_nested_str(volume, "configMap.name"))
            _add_name(secrets, nested.get_nested_str(volume, "secret.secretName"))

        return list(config_maps), list(secrets)

    def verify_checksum_annotations(self) -> VerifyChecksumAnnotationsResult:
        """Verify the checksum annotations of the pod template.

        Every referenced ConfigMap and Secret must have a checksum annotation
        whose key contains its name, and every checksum annotation must
        contain the name of a referenced ConfigMap or Secret.
        """
        config_maps, secrets = self._referenced_resources()
        checksum_keys = [
            str(key) for key in self.annotations() if CHECKSUM in str(key).lower()
        ]
        _LOGGER.debug(
            "Workload %s references ConfigMaps %s and Secrets %s, annotations %s",
            self.name,
            config_maps,
            secrets,
            checksum_keys,
        )

        messages = []
        for config_map in config_maps:
            if not any(config_map in key for key in checksum_keys):
                messages.append(
                    f"Workload '{self.name}' is missing checksum annotation for "
                    f"referenced ConfigMap '{config_map}'."
                )
        for secret in secrets:
            if not any(secret in key for key in checksum_keys):
                messages.append(
                    f"Workload '{self.name}' is missing checksum annotation for "
                    f"referenced Secret '{secret}'."
                )
        referenced = config_maps + secrets
        for key in checksum_keys:
            if not any(name in key for name in referenced):
                messages.append(
                    f"Workload '{self.name}' has unnecessary extra checksum "
                    f"annotation '{key}'."
                )

        if not messages:
            return VerifyChecksumAnnotationsResult.SUCCESS
        return VerifyChecksumAnnotationsResult(False, "\n".join(messages))

    def __str__(self) -> str:
        """Render as a debug string."""
        return f"{self.kind}/{self.name}"
