"""Typed representations of rendered Kubernetes objects.

These are deliberately partial models: they cover the fields that are commonly
asserted on in chart tests and ignore everything else. The untyped tree of the
same document is always available from `helm_verify.manifest.RenderedObject`
for fields that are not modelled here.

```python
from helm_verify.objects import Deployment, parse_raw_obj

deployment = parse_raw_obj(yaml.safe_load(content))
assert isinstance(deployment, Deployment)
print(deployment.spec.template.spec.containers[0].image)
```
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField

from .exceptions import TypedObjectError

__all__ = [
    "KubernetesObject",
    "ObjectMeta",
    "Container",
    "Deployment",
    "StatefulSet",
    "DaemonSet",
    "ReplicaSet",
    "Job",
    "CronJob",
    "Service",
    "ServiceAccount",
    "ConfigMap",
    "Secret",
    "Ingress",
    "PersistentVolumeClaim",
    "parse_raw_obj",
]

# Match a prefix of apiVersion to ensure we have the right type of object.
CORE_API = "v1"
APPS_API = "apps/v1"
BATCH_API = "batch/v1"
NETWORKING_API = "networking.k8s.io/v1"

DEPLOYMENT_KIND = "Deployment"
STATEFUL_SET_KIND = "StatefulSet"
DAEMON_SET_KIND = "DaemonSet"
REPLICA_SET_KIND = "ReplicaSet"
JOB_KIND = "Job"
CRON_JOB_KIND = "CronJob"
SERVICE_KIND = "Service"
SERVICE_ACCOUNT_KIND = "ServiceAccount"
CONFIG_MAP_KIND = "ConfigMap"
SECRET_KIND = "Secret"
INGRESS_KIND = "Ingress"
PVC_KIND = "PersistentVolumeClaim"


def _check_version(doc: dict[str, Any], version: str) -> None:
    """Assert that the resource has the specified version."""
    if not (api_version := doc.get("apiVersion")):
        raise TypedObjectError(f"Invalid object missing apiVersion: {doc}")
    if not isinstance(api_version, str):
        raise TypedObjectError(f"Invalid object apiVersion is not a string: {doc}")
    if not api_version.startswith(version):
        raise TypedObjectError(f"Invalid object expected '{version}': {doc}")


@dataclass
class BaseModel(DataClassDictMixin):
    """Base class for all typed models."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass
class ObjectMeta(BaseModel):
    """Metadata of a rendered object."""

    name: Optional[str] = None
    namespace: Optional[str] = None
    labels: Optional[dict[str, Any]] = None
    annotations: Optional[dict[str, Any]] = None


@dataclass
class KeySelector(BaseModel):
    """Selects a key of a ConfigMap or Secret."""

    name: Optional[str] = None
    key: Optional[str] = None
    optional: Optional[bool] = None


@dataclass
class EnvVarSource(BaseModel):
    """Source for the value of an environment variable."""

    config_map_key_ref: Optional[KeySelector] = field(
        metadata=field_options(alias="configMapKeyRef"), default=None
    )
    secret_key_ref: Optional[KeySelector] = field(
        metadata=field_options(alias="secretKeyRef"), default=None
    )
    field_ref: Optional[dict[str, Any]] = field(
        metadata=field_options(alias="fieldRef"), default=None
    )


@dataclass
class EnvVar(BaseModel):
    """An environment variable of a container."""

    name: str
    value: Optional[str] = None
    value_from: Optional[EnvVarSource] = field(
        metadata=field_options(alias="valueFrom"), default=None
    )


@dataclass
class LocalObjectReference(BaseModel):
    """A reference to an object in the same namespace."""

    name: Optional[str] = None
    optional: Optional[bool] = None


@dataclass
class EnvFromSource(BaseModel):
    """A source of a set of environment variables of a container."""

    prefix: Optional[str] = None
    config_map_ref: Optional[LocalObjectReference] = field(
        metadata=field_options(alias="configMapRef"), default=None
    )
    secret_ref: Optional[LocalObjectReference] = field(
        metadata=field_options(alias="secretRef"), default=None
    )


@dataclass
class ContainerPort(BaseModel):
    """A network port exposed by a container."""

    container_port: int = field(metadata=field_options(alias="containerPort"))
    name: Optional[str] = None
    protocol: Optional[str] = None


@dataclass
class Container(BaseModel):
    """A container of a pod template."""

    name: str
    image: Optional[str] = None
    image_pull_policy: Optional[str] = field(
        metadata=field_options(alias="imagePullPolicy"), default=None
    )
    command: Optional[list[str]] = None
    args: Optional[list[str]] = None
    env: Optional[list[EnvVar]] = None
    env_from: Optional[list[EnvFromSource]] = field(
        metadata=field_options(alias="envFrom"), default=None
    )
    ports: Optional[list[ContainerPort]] = None
    resources: Optional[dict[str, Any]] = None
    volume_mounts: Optional[list[dict[str, Any]]] = field(
        metadata=field_options(alias="volumeMounts"), default=None
    )


@dataclass
class ConfigMapVolumeSource(BaseModel):
    """A volume populated by a ConfigMap."""

    name: Optional[str] = None
    optional: Optional[bool] = None


@dataclass
class SecretVolumeSource(BaseModel):
    """A volume populated by a Secret."""

    secret_name: Optional[str] = field(
        metadata=field_options(alias="secretName"), default=None
    )
    optional: Optional[bool] = None


@dataclass
class Volume(BaseModel):
    """A volume of a pod template."""

    name: str
    config_map: Optional[ConfigMapVolumeSource] = field(
        metadata=field_options(alias="configMap"), default=None
    )
    secret: Optional[SecretVolumeSource] = None
    persistent_volume_claim: Optional[dict[str, Any]] = field(
        metadata=field_options(alias="persistentVolumeClaim"), default=None
    )


@dataclass
class PodSpec(BaseModel):
    """Specification of the pods of a workload."""

    containers: list[Container] = field(default_factory=list)
    init_containers: Optional[list[Container]] = field(
        metadata=field_options(alias="initContainers"), default=None
    )
    volumes: Optional[list[Volume]] = None
    image_pull_secrets: Optional[list[LocalObjectReference]] = field(
        metadata=field_options(alias="imagePullSecrets"), default=None
    )
    service_account_name: Optional[str] = field(
        metadata=field_options(alias="serviceAccountName"), default=None
    )


@dataclass
class PodTemplateSpec(BaseModel):
    """Template for the pods created by a workload."""

    metadata: Optional[ObjectMeta] = None
    spec: Optional[PodSpec] = None


@dataclass
class KubernetesObject(BaseModel):
    """Base class of the typed Kubernetes objects."""

    kind: ClassVar[str]
    """The kind of the object."""

    api_group: ClassVar[str]
    """The apiVersion prefix expected for the kind."""

    api_version: str = field(metadata=field_options(alias="apiVersion"))
    """The apiVersion of the object."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    """The metadata of the object."""

    @property
    def name(self) -> str | None:
        """The name of the object."""
        return self.metadata.name


@dataclass
class DeploymentSpec(BaseModel):
    """Specification of a Deployment."""

    replicas: Optional[int] = None
    selector: Optional[dict[str, Any]] = None
    template: Optional[PodTemplateSpec] = None


@dataclass
class Deployment(KubernetesObject):
    """A Deployment manages a replicated set of pods."""

    kind: ClassVar[str] = DEPLOYMENT_KIND
    api_group: ClassVar[str] = APPS_API

    spec: Optional[DeploymentSpec] = None


@dataclass
class StatefulSetSpec(BaseModel):
    """Specification of a StatefulSet."""

    service_name: Optional[str] = field(
        metadata=field_options(alias="serviceName"), default=None
    )
    replicas: Optional[int] = None
    selector: Optional[dict[str, Any]] = None
    template: Optional[PodTemplateSpec] = None
    volume_claim_templates: Optional[list[dict[str, Any]]] = field(
        metadata=field_options(alias="volumeClaimTemplates"), default=None
    )


@dataclass
class StatefulSet(KubernetesObject):
    """A StatefulSet manages pods with stable identities."""

    kind: ClassVar[str] = STATEFUL_SET_KIND
    api_group: ClassVar[str] = APPS_API

    spec: Optional[StatefulSetSpec] = None


@dataclass
class DaemonSetSpec(BaseModel):
    """Specification of a DaemonSet."""

    selector: Optional[dict[str, Any]] = None
    template: Optional[PodTemplateSpec] = None


@dataclass
class DaemonSet(KubernetesObject):
    """A DaemonSet runs a pod on every eligible node."""

    kind: ClassVar[str] = DAEMON_SET_KIND
    api_group: ClassVar[str] = APPS_API

    spec: Optional[DaemonSetSpec] = None


@dataclass
class ReplicaSet(KubernetesObject):
    """A ReplicaSet keeps a number of pod replicas running."""

    kind: ClassVar[str] = REPLICA_SET_KIND
    api_group: ClassVar[str] = APPS_API

    spec: Optional[DeploymentSpec] = None


@dataclass
class JobSpec(BaseModel):
    """Specification of a Job."""

    template: Optional[PodTemplateSpec] = None
    backoff_limit: Optional[int] = field(
        metadata=field_options(alias="backoffLimit"), default=None
    )
    completions: Optional[int] = None
    parallelism: Optional[int] = None
    ttl_seconds_after_finished: Optional[int] = field(
        metadata=field_options(alias="ttlSecondsAfterFinished"), default=None
    )


@dataclass
class Job(KubernetesObject):
    """A Job runs pods until completion."""

    kind: ClassVar[str] = JOB_KIND
    api_group: ClassVar[str] = BATCH_API

    spec: Optional[JobSpec] = None


@dataclass
class JobTemplateSpec(BaseModel):
    """Template for the Jobs created by a CronJob."""

    metadata: Optional[ObjectMeta] = None
    spec: Optional[JobSpec] = None


@dataclass
class CronJobSpec(BaseModel):
    """Specification of a CronJob."""

    schedule: Optional[str] = None
    suspend: Optional[bool] = None
    job_template: Optional[JobTemplateSpec] = field(
        metadata=field_options(alias="jobTemplate"), default=None
    )


@dataclass
class CronJob(KubernetesObject):
    """A CronJob runs Jobs on a schedule."""

    kind: ClassVar[str] = CRON_JOB_KIND
    api_group: ClassVar[str] = BATCH_API

    spec: Optional[CronJobSpec] = None


@dataclass
class ServicePort(BaseModel):
    """A port exposed by a Service."""

    port: int
    name: Optional[str] = None
    protocol: Optional[str] = None
    target_port: Optional[int | str] = field(
        metadata=field_options(alias="targetPort"), default=None
    )


@dataclass
class ServiceSpec(BaseModel):
    """Specification of a Service."""

    type: Optional[str] = None
    cluster_ip: Optional[str] = field(
        metadata=field_options(alias="clusterIP"), default=None
    )
    ports: Optional[list[ServicePort]] = None
    selector: Optional[dict[str, Any]] = None


@dataclass
class Service(KubernetesObject):
    """A Service exposes a set of pods on the network."""

    kind: ClassVar[str] = SERVICE_KIND
    api_group: ClassVar[str] = CORE_API

    spec: Optional[ServiceSpec] = None


@dataclass
class ServiceAccount(KubernetesObject):
    """A ServiceAccount provides an identity for pods."""

    kind: ClassVar[str] = SERVICE_ACCOUNT_KIND
    api_group: ClassVar[str] = CORE_API

    automount_service_account_token: Optional[bool] = field(
        metadata=field_options(alias="automountServiceAccountToken"), default=None
    )
    image_pull_secrets: Optional[list[LocalObjectReference]] = field(
        metadata=field_options(alias="imagePullSecrets"), default=None
    )


@dataclass
class ConfigMap(KubernetesObject):
    """A ConfigMap is an API object used to store data in key-value pairs."""

    kind: ClassVar[str] = CONFIG_MAP_KIND
    api_group: ClassVar[str] = CORE_API

    data: Optional[dict[str, str]] = None
    binary_data: Optional[dict[str, bytes]] = field(
        metadata=field_options(alias="binaryData"), default=None
    )


@dataclass
class Secret(KubernetesObject):
    """A Secret contains a small amount of sensitive data.

    Values of `data` are decoded from base64.
    """

    kind: ClassVar[str] = SECRET_KIND
    api_group: ClassVar[str] = CORE_API

    type: Optional[str] = None
    data: Optional[dict[str, bytes]] = None
    string_data: Optional[dict[str, str]] = field(
        metadata=field_options(alias="stringData"), default=None
    )


@dataclass
class HTTPIngressPath(BaseModel):
    """A path routed by an Ingress rule."""

    path: Optional[str] = None
    path_type: Optional[str] = field(
        metadata=field_options(alias="pathType"), default=None
    )
    backend: Optional[dict[str, Any]] = None


@dataclass
class HTTPIngressRuleValue(BaseModel):
    """The HTTP paths of an Ingress rule."""

    paths: list[HTTPIngressPath] = field(default_factory=list)


@dataclass
class IngressRule(BaseModel):
    """A host rule of an Ingress."""

    host: Optional[str] = None
    http: Optional[HTTPIngressRuleValue] = None


@dataclass
class IngressSpec(BaseModel):
    """Specification of an Ingress."""

    ingress_class_name: Optional[str] = field(
        metadata=field_options(alias="ingressClassName"), default=None
    )
    rules: Optional[list[IngressRule]] = None
    tls: Optional[list[dict[str, Any]]] = None


@dataclass
class Ingress(KubernetesObject):
    """An Ingress exposes HTTP routes to Services."""

    kind: ClassVar[str] = INGRESS_KIND
    api_group: ClassVar[str] = NETWORKING_API

    spec: Optional[IngressSpec] = None


@dataclass
class PersistentVolumeClaimSpec(BaseModel):
    """Specification of a PersistentVolumeClaim."""

    access_modes: Optional[list[str]] = field(
        metadata=field_options(alias="accessModes"), default=None
    )
    storage_class_name: Optional[str] = field(
        metadata=field_options(alias="storageClassName"), default=None
    )
    resources: Optional[dict[str, Any]] = None


@dataclass
class PersistentVolumeClaim(KubernetesObject):
    """A PersistentVolumeClaim requests storage for pods."""

    kind: ClassVar[str] = PVC_KIND
    api_group: ClassVar[str] = CORE_API

    spec: Optional[PersistentVolumeClaimSpec] = None


TYPED_KINDS: dict[str, type[KubernetesObject]] = {
    cls.kind: cls
    for cls in (
        Deployment,
        StatefulSet,
        DaemonSet,
        ReplicaSet,
        Job,
        CronJob,
        Service,
        ServiceAccount,
        ConfigMap,
        Secret,
        Ingress,
        PersistentVolumeClaim,
    )
}


def parse_container(doc: dict[str, Any]) -> Container:
    """Parse a Container from a raw container object."""
    try:
        return Container.from_dict(doc)
    except (MissingField, InvalidFieldValue, ValueError, TypeError) as err:
        raise TypedObjectError(f"Invalid container {doc}: {err}") from err


def parse_raw_obj(obj: dict[str, Any]) -> KubernetesObject:
    """Parse a raw kubernetes object into a typed KubernetesObject."""
    if not (kind := obj.get("kind")):
        raise TypedObjectError(f"Invalid object missing kind: {obj}")
    if not isinstance(kind, str):
        raise TypedObjectError(f"Invalid object kind is not a string: {obj}")
    if not (cls := TYPED_KINDS.get(kind)):
        raise TypedObjectError(f"Unsupported kind '{kind}' for typed object")
    _check_version(obj, cls.api_group)
    try:
        return cls.from_dict(obj)
    except (MissingField, InvalidFieldValue, ValueError, TypeError) as err:
        raise TypedObjectError(f"Invalid {kind} object: {err}") from err
