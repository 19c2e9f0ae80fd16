"""Best-effort discovery of the values referenced by chart templates.

This does not parse the Go templates. It looks for the pattern `.Values.*` in
the template sources after removing all parentheses, so that forms like
`(.Values.foo).bar` are read as `foo.bar`. As a result there are some known
limitations:

- Variables are not followed. If you set `{{ $x := .Values.foo }}` and later
  use `{{ $x.bar }}`, the value `foo.bar` is not detected.
- Template calls are not followed. If you run `{{ include "fn" .Values.arg }}`
  and `fn` uses `{{ .sub }}`, the value `arg.sub` is not detected.
- Scopes are not considered. If you use `{{ with .Values.top }}` and inside it
  `{{ .inner }}`, the value `top.inner` is not detected.
"""

import logging
from pathlib import Path
import re

__all__ = [
    "scan",
]

_LOGGER = logging.getLogger(__name__)

TEMPLATE_SUFFIXES = {".yaml", ".yml", ".tpl"}

VALUES_PATTERN = re.compile(
    r"\.Values\.([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)"
)

_PARENTHESES = str.maketrans("", "", "()")


def extract_values(content: str) -> set[str]:
    """Return the value paths referenced in a template source."""
    return set(VALUES_PATTERN.findall(content.translate(_PARENTHESES)))


def scan(templates_dir: Path) -> set[str]:
    """Return the value paths referenced by the templates in the directory.

    Returns an empty set if the directory does not exist.
    """
    values: set[str] = set()
    if not templates_dir.is_dir():
        _LOGGER.debug("No templates directory %s", templates_dir)
        return values
    for path in sorted(templates_dir.rglob("*")):
        if not path.is_file() or path.suffix not in TEMPLATE_SUFFIXES:
            continue
        found = extract_values(path.read_text(encoding="utf-8"))
        _LOGGER.debug("Found %d values in %s", len(found), path)
        values.update(found)
    return values
