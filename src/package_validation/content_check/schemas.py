"""JSON Schema registry for package metadata files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

import yaml
from jsonschema import Draft202012Validator
from referencing import Registry, Resource
from referencing.exceptions import NoSuchResource
from referencing.jsonschema import DRAFT202012

SCHEMA_ROOT = Path(__file__).resolve().parent / "schemas"

PATHS_JSON_SCHEMA = "paths.schema.yaml"
INDEX_JSON_SCHEMA = "index.schema.yaml"


@dataclass
class SchemaRegistry:
    root: Path = SCHEMA_ROOT
    _cache: dict[str, dict[str, Any]] = field(default_factory=dict, init=False, repr=False)
    _paths: dict[str, Path] = field(default_factory=dict, init=False, repr=False)
    _resources: dict[str, Resource[Any]] = field(default_factory=dict, init=False, repr=False)

    def load(self, name: str) -> dict[str, Any]:
        if name in self._cache:
            return self._cache[name]
        path = (self.root / name).resolve()
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        self._cache[name] = data
        self._paths[name] = path
        return data

    def validate(self, name: str, payload: Any) -> None:
        schema = self.load(name)
        base_uri = self._paths[name].as_uri()
        # Relative $refs (e.g. defs.schema.yaml) resolve against the schema file itself.
        schema = {**schema, "$id": base_uri}
        registry = Registry(retrieve=self._retrieve_resource)
        registry = registry.with_resource(
            base_uri,
            Resource.from_contents(schema, default_specification=DRAFT202012),
        )
        validator = Draft202012Validator(schema, registry=registry)
        errors = sorted(validator.iter_errors(payload), key=lambda e: [str(part) for part in e.absolute_path])
        if errors:
            messages = "; ".join(_describe(error) for error in errors)
            raise ValueError(f"Schema validation failed for {name}: {messages}")

    def _retrieve_resource(self, uri: str) -> Resource[Any]:
        if uri in self._resources:
            return self._resources[uri]
        parsed = urlparse(uri)
        if parsed.scheme not in ("", "file"):
            raise NoSuchResource(uri)
        path = Path(unquote(parsed.path)).resolve()
        if path.parent != self.root.resolve() or not path.exists():
            raise NoSuchResource(uri)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        resource = Resource.from_contents(data, default_specification=DRAFT202012)
        self._resources[uri] = resource
        return resource


def _describe(error: Any) -> str:
    location = "/".join(str(part) for part in error.absolute_path)
    if not location:
        return error.message
    return f"{location}: {error.message}"

