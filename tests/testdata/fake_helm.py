"""A stand-in for the helm executable that renders the my-app test chart.

Supports `helm version` and `helm template <chart> [--values <file>]...`. The
values files are merged over the chart `values.yaml` in order, the way helm
does, and the objects rendered by the real chart templates are produced from
the merged values. Set `FAKE_HELM_LOG` to a file path to record the arguments
and the content of each values file as YAML.
"""

import base64
import os
from pathlib import Path
import random
import string
import sys
from typing import Any

import yaml

PULL_POLICIES = ["Always", "IfNotPresent", "Never"]


def merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge(result[key], value)
        else:
            result[key] = value
    return result


def b64(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


def render(values: dict[str, Any]) -> list[tuple[str, list[dict[str, Any]]]]:
    """Return the rendered objects of each template file."""
    pull_policy = values["image"]["pullPolicy"]
    if pull_policy not in PULL_POLICIES:
        raise ValueError(
            f"Invalid image.pullPolicy '{pull_policy}', expected one of "
            + ", ".join(PULL_POLICIES)
        )
    labels = {"app.kubernetes.io/name": "my-app"}
    if values["edge"]["useFeature"]:
        labels["my-app/feature"] = str(values["edge"]["first"])

    config_maps = [
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "my-app-config", "labels": dict(labels)},
            "data": {
                "underscored": str(values["with_underscore"]),
                "nested": str(values["deeply"]["nested"]["value"]["here"]),
                "second": str(values["edge"]["second"]),
            },
        }
    ]
    if values["config2"]["enabled"]:
        config_maps.append(
            {
                "apiVersion": "v1",
                "kind": "ConfigMap",
                "metadata": {"name": "my-app-config2", "labels": dict(labels)},
                "data": {"enabled": "true"},
            }
        )

    password = "hunter2"
    if values["equalityTesting"]["useRandomSecret"]:
        password = "".join(random.choices(string.ascii_letters, k=16))
    secret = {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "my-app-secret", "labels": dict(labels)},
        "type": "Opaque",
        "data": {"password": b64(password)},
    }

    deployment = {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "my-app", "labels": dict(labels)},
        "spec": {
            "replicas": values["replicas"],
            "selector": {"matchLabels": {"app.kubernetes.io/name": "my-app"}},
            "template": {
                "metadata": {
                    "annotations": {
                        "checksum/my-app-config": "1" * 64,
                        "checksum/my-app-secret": "2" * 64,
                    },
                    "labels": {"app.kubernetes.io/name": "my-app"},
                },
                "spec": {
                    "containers": [
                        {
                            "name": "my-app",
                            "image": "nginx:1.16.0",
                            "imagePullPolicy": pull_policy,
                            "ports": [
                                {
                                    "name": "http",
                                    "containerPort": 80,
                                    "protocol": "TCP",
                                }
                            ],
                            "envFrom": [{"configMapRef": {"name": "my-app-config"}}],
                            "env": [
                                {
                                    "name": "PASSWORD",
                                    "valueFrom": {
                                        "secretKeyRef": {
                                            "name": "my-app-secret",
                                            "key": "password",
                                        }
                                    },
                                }
                            ],
                        }
                    ]
                },
            },
        },
    }
    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": "my-app", "labels": dict(labels)},
        "spec": {
            "type": "ClusterIP",
            "ports": [
                {"port": 80, "targetPort": "http", "protocol": "TCP", "name": "http"}
            ],
            "selector": {"app.kubernetes.io/name": "my-app"},
        },
    }
    cron_job = {
        "apiVersion": "batch/v1",
        "kind": "CronJob",
        "metadata": {"name": "my-app-cleanup"},
        "spec": {
            "schedule": "0 3 * * *",
            "jobTemplate": {
                "spec": {
                    "template": {
                        "metadata": {
                            "annotations": {"checksum/my-app-config": "1" * 64}
                        },
                        "spec": {
                            "restartPolicy": "OnFailure",
                            "containers": [
                                {
                                    "name": "cleanup",
                                    "image": "busybox:1.36",
                                    "command": ["sh", "-c", "echo cleanup"],
                                    "envFrom": [
                                        {"configMapRef": {"name": "my-app-config"}}
                                    ],
                                }
                            ],
                        },
                    }
                }
            },
        },
    }

    test = values["checksumAnnotationTest"]
    annotations = {}
    if not test["missingConfigMapAnnotation"]:
        annotations["checksum/checksum-annotation-tester-config"] = "0"
    if not test["missingSecretAnnotation"]:
        annotations["checksum/checksum-annotation-tester-secret"] = "0"
    if test["unnecessaryExtraResourceAnnotation"]:
        annotations["checksum/checksum-annotation-tester-extra-config"] = "0"
    annotations["unrelated/annotation"] = "kept"
    tester = [
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "checksum-annotation-tester-config"},
            "data": {"key": "value"},
        },
        {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": "checksum-annotation-tester-secret"},
            "type": "Opaque",
            "stringData": {"key": "value"},
        },
        {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": "checksum-annotation-tester"},
            "spec": {
                "replicas": 1,
                "selector": {"matchLabels": {"app": "checksum-annotation-tester"}},
                "template": {
                    "metadata": {
                        "annotations": annotations,
                        "labels": {"app": "checksum-annotation-tester"},
                    },
                    "spec": {
                        "containers": [{"name": "tester", "image": "busybox:1.36"}],
                        "volumes": [
                            {
                                "name": "config",
                                "configMap": {
                                    "name": "checksum-annotation-tester-config"
                                },
                            },
                            {
                                "name": "secret",
                                "secret": {
                                    "secretName": "checksum-annotation-tester-secret"
                                },
                            },
                        ],
                    },
                },
            },
        },
    ]
    return [
        ("checksum-annotation-tester.yml", tester),
        ("configmap.yaml", config_maps),
        ("cronjob.yaml", [cron_job]),
        ("deployment.yaml", [deployment]),
        ("secret.yaml", [secret]),
        ("service.yaml", [service]),
    ]


def template(args: list[str]) -> int:
    chart = Path(args[0])
    values_files = [args[i + 1] for i, arg in enumerate(args) if arg == "--values"]
    values = yaml.safe_load((chart / "values.yaml").read_text())
    overlays = []
    for values_file in values_files:
        content = Path(values_file).read_text()
        overlays.append(content)
        values = merge(values, yaml.safe_load(content) or {})

    if log_file := os.environ.get("FAKE_HELM_LOG"):
        Path(log_file).write_text(yaml.safe_dump({"args": args, "values": overlays}))

    try:
        rendered = render(values)
    except ValueError as err:
        print(
            f"Error: execution error at (my-app/templates/deployment.yaml:3:4): {err}",
            file=sys.stderr,
        )
        return 1
    for filename, objects in rendered:
        for obj in objects:
            print("---")
            print(f"# Source: my-app/templates/{filename}")
            print(yaml.safe_dump(obj, sort_keys=False), end="")
    return 0


def main(argv: list[str]) -> int:
    if not argv:
        print("Error: no command given", file=sys.stderr)
        return 1
    if argv[0] == "version":
        print('version.BuildInfo{Version:"v3.14.0-fake", GoVersion:"go1.21"}')
        return 0
    if argv[0] == "template":
        return template(argv[1:])
    print(f"Error: unknown command \"{argv[0]}\" for \"helm\"", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
