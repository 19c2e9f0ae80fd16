"""Library for reading the values declared by a chart `values.schema.json`.

The schema is walked as if it were validating an empty values object, so
every declared property is visited whether or not it has a default. Only leaf
properties are returned, as dot separated paths, which is the same shape as
the output of `helm_verify.scraper`:

```python
from helm_verify import schema, scraper

declared = schema.read_leaf_paths(chart / "values.schema.json")
used = scraper.scan(chart / "templates")
assert declared == used
```
"""

import json
import logging
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.validators import validator_for
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT7

from .exceptions import SchemaFileNotFoundError, SchemaWalkError

__all__ = [
    "read_leaf_paths",
]

_LOGGER = logging.getLogger(__name__)

# Keywords whose subschemas apply to the same location of the values
APPLICATOR_KEYWORDS = ("allOf", "anyOf", "oneOf")


class _PropertyWalker:
    """Visits the declared properties of a schema and keeps the leaf paths."""

    def __init__(self) -> None:
        """Initialize _PropertyWalker."""
        self.paths: dict[str, None] = {}
        self.errors: list[str] = []

    def walk(
        self,
        schema: Any,
        resolver: Any,
        path: str,
        refs_seen: tuple[int, ...] = (),
    ) -> None:
        if not isinstance(schema, dict):
            return
        if "$id" in schema:
            resolver = resolver.in_subresource(DRAFT7.create_resource(schema))
        if (ref := schema.get("$ref")) is not None:
            try:
                resolved = resolver.lookup(ref)
            except Unresolvable as err:
                location = "/" + path.replace(".", "/")
                self.errors.append(
                    f"Unable to resolve $ref '{ref}' at '{location}': {err}"
                )
                return
            if id(resolved.contents) in refs_seen:
                _LOGGER.debug("Not following recursive $ref '%s' at '%s'", ref, path)
                return
            self.walk(
                resolved.contents,
                resolved.resolver,
                path,
                refs_seen + (id(resolved.contents),),
            )
            return
        for keyword in APPLICATOR_KEYWORDS:
            if isinstance(subschemas := schema.get(keyword), list):
                for subschema in subschemas:
                    self.walk(subschema, resolver, path, refs_seen)
        if not isinstance(properties := schema.get("properties"), dict):
            return
        for name, subschema in properties.items():
            key = f"{path}.{name}" if path else name
            self.paths[key] = None
            # A parent with a declared child is not a leaf
            self.paths.pop(path, None)
            self.walk(subschema, resolver, key, refs_seen)


def _metaschema_errors(schema: Any) -> list[str]:
    """Return the problems found validating the schema against its metaschema."""
    validator_cls = validator_for(schema, default=Draft7Validator)
    metaschema_validator = validator_cls(validator_cls.META_SCHEMA)
    return [
        f"at '/{'/'.join(str(part) for part in error.absolute_path)}': {error.message}"
        for error in metaschema_validator.iter_errors(schema)
    ]


def read_leaf_paths(schema_file: Path) -> set[str]:
    """Return the leaf value paths declared in a JSON schema file."""
    if not schema_file.is_file():
        raise SchemaFileNotFoundError(
            "Cannot read values from non-existent schema file "
            f"'{schema_file.absolute()}'"
        )
    content = schema_file.read_text(encoding="utf-8")
    if not content.strip():
        _LOGGER.debug("Schema file %s is empty", schema_file)
        return set()
    try:
        schema = json.loads(content)
    except json.JSONDecodeError as err:
        raise SchemaWalkError(schema_file, [f"Invalid JSON: {err}"]) from err

    if errors := _metaschema_errors(schema):
        raise SchemaWalkError(schema_file, errors)
    if not isinstance(schema, dict):
        return set()

    base_uri = schema_file.absolute().as_uri()
    registry: Registry[Any] = Registry().with_resource(
        base_uri, Resource.from_contents(schema, default_specification=DRAFT7)
    ).crawl()
    walker = _PropertyWalker()
    walker.walk(schema, registry.resolver(base_uri=base_uri), "")
    if walker.errors:
        raise SchemaWalkError(schema_file, walker.errors)
    _LOGGER.debug("Found %d values in %s", len(walker.paths), schema_file)
    return set(walker.paths)
