"""Helpers for navigating the untyped trees produced by YAML parsing.

A path is a dot separated list of mapping keys, for example
`spec.template.spec.containers`. Navigation never raises: when a segment is
missing, or an intermediate value is not a mapping, the result is `None`.

```python
from helm_verify import nested

doc = yaml.safe_load(content)
containers = nested.get_nested_list(doc, "spec.template.spec.containers") or []
```
"""

from typing import Any

__all__ = [
    "get_nested",
    "get_nested_str",
    "get_nested_list",
    "get_nested_dict",
]


def get_nested(tree: Any, path: str) -> Any | None:
    """Return the value at the dot separated path, or None if absent.

    An empty path returns the tree itself.
    """
    if not path.strip():
        return tree
    node = tree
    for key in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def get_nested_str(tree: Any, path: str) -> str | None:
    """Return the string at the path, or None if absent or not a string."""
    value = get_nested(tree, path)
    if isinstance(value, str):
        return value
    return None


def get_nested_list(tree: Any, path: str) -> list[Any] | None:
    """Return the list at the path, or None if absent or not a list."""
    value = get_nested(tree, path)
    if isinstance(value, list):
        return value
    return None


def get_nested_dict(tree: Any, path: str) -> dict[str, Any] | None:
    """Return the mapping at the path, or None if absent or not a mapping."""
    value = get_nested(tree, path)
    if isinstance(value, dict):
        return value
    return None
