from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Union

import yaml
from pydantic import ValidationError

from seedpipe.core.models import Registry, ServiceRecord

from .exceptions import RegistryFormatError, RegistryValidationError


RegistrySource = Union[str, Path, Mapping[str, Any], Sequence[Any]]

YAML_SUFFIXES = (".yaml", ".yml")


def _read_file(path: Path) -> Any:
    if not path.exists():
        raise RegistryFormatError(source=str(path), reason="file not found")
    if not path.is_file():
        raise RegistryFormatError(source=str(path), reason="not a file")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise RegistryFormatError(source=str(path), reason=f"cannot read file ({e})")

    fmt = "yaml" if path.suffix.lower() in YAML_SUFFIXES else "json"
    return parse_document(text, fmt=fmt, source=str(path))


def parse_document(text: str, fmt: str = "json", source: str = "<text>") -> Any:
    """
    Parses the raw registry text (json or yaml) into python objects.
    Shape is not checked here, see load().
    """
    try:
        if fmt == "yaml":
            return yaml.safe_load(text)
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise RegistryFormatError(source=source, reason=f"invalid JSON ({e})")
    except yaml.YAMLError as e:
        raise RegistryFormatError(source=source, reason=f"invalid YAML ({e})")


def _service_entries(document: Any, source: str) -> List[Dict[str, Any]]:
    # {"services": [...]} or a bare list of services
    if isinstance(document, Mapping):
        if "services" not in document:
            raise RegistryFormatError(source=source, reason="missing top-level 'services' list")
        entries = document["services"]
    else:
        entries = document

    if isinstance(entries, (str, bytes)) or not isinstance(entries, Sequence):
        raise RegistryFormatError(
            source=source,
            reason=f"'services' must be a list, got {type(entries).__name__}",
        )

    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            raise RegistryFormatError(
                source=source,
                reason=f"services[{index}] must be an object, got {type(entry).__name__}",
            )
    return [dict(entry) for entry in entries]


def _describe(error: ValidationError) -> List[str]:
    problems: List[str] = []
    for item in error.errors():
        field = ".".join(str(part) for part in item.get("loc", ())) or "record"
        message = item.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        problems.append(f"{field}: {message}")
    return problems


def load(source: RegistrySource) -> Registry:
    """
    Loads and validates the service registry.

    source may be a path to a .json/.yaml file or an already parsed document.
    Any problem rejects the whole registry:

    :raises RegistryFormatError: document unreadable or of the wrong shape.
    :raises RegistryValidationError: duplicate names, missing fields,
                                     helmRepository without helmBranch, ...
    """
    if isinstance(source, (str, Path)):
        label = str(source)
        document = _read_file(Path(source))
    else:
        label = "<document>"
        document = source

    entries = _service_entries(document, label)

    problems: List[str] = []
    records: List[ServiceRecord] = []
    seen: Dict[str, int] = {}

    for index, entry in enumerate(entries):
        name = entry.get("name")
        where = f"services[{index}]" + (f" ({name})" if name else "")
        try:
            record = ServiceRecord.model_validate(entry)
        except ValidationError as e:
            problems.extend(f"{where} {p}" for p in _describe(e))
            continue

        if record.name in seen:
            problems.append(
                f"{where} duplicate name {record.name!r} (first defined at services[{seen[record.name]}])"
            )
            continue

        seen[record.name] = index
        records.append(record)

    if problems:
        raise RegistryValidationError(source=label, problems=problems)

    return Registry(tuple(records), source=label)
