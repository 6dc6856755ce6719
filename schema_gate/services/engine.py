"""
JSON Schema engine adapter.

Wraps the ``jsonschema`` library behind one narrow call:

    compile_schema(schema, options) -> validate_fn(data) -> list[ErrorRecord] | None

Options use ajv-compatible names for the switches this adapter understands
(``allErrors``, ``verbose``, ``validateFormats``, ``formats``,
``validateSchema``). Every other key is handed to the jsonschema validator
class as a keyword argument, so engine features stay reachable without
changing this interface.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Mapping
from itertools import islice
from typing import Any, Callable, Iterable
from urllib.parse import unquote

from jsonschema import FormatChecker
from jsonschema.exceptions import ValidationError
from jsonschema.validators import validator_for
from referencing import Registry
from referencing.exceptions import Unresolvable
from referencing.jsonschema import specification_with

from schema_gate.config import settings
from schema_gate.schemas.api import ErrorRecord

logger = logging.getLogger(__name__)

CompiledValidator = Callable[[Any], "list[ErrorRecord] | None"]

_LIMIT_KEYWORDS = {
    "minLength",
    "maxLength",
    "minItems",
    "maxItems",
    "minProperties",
    "maxProperties",
    "minContains",
    "maxContains",
}

_COMPARISONS = {
    "minimum": ">=",
    "maximum": "<=",
    "exclusiveMinimum": ">",
    "exclusiveMaximum": "<",
}

# Keywords whose children are keyed by user-chosen names, not keywords
_NAMED_CHILDREN = {
    "properties",
    "patternProperties",
    "definitions",
    "$defs",
    "dependentSchemas",
    "dependencies",
}


# ---------------------------------------------------------------------------
# Format checkers
# ---------------------------------------------------------------------------

def build_format_checker(formats: Mapping[str, Any] | None = None) -> FormatChecker:
    """
    Fresh checker holding every format jsonschema knows (email, date, time,
    uri, uri-template, uuid, hostname, regex, ...) regardless of dialect,
    plus any caller-supplied ``formats`` (regex string or predicate).
    """
    checker = FormatChecker()
    for name, rule in (formats or {}).items():
        checker.checks(name)(_format_predicate(rule))
    return checker


def _format_predicate(rule: Any) -> Callable[[Any], bool]:
    if isinstance(rule, str):
        pattern = re.compile(rule)

        def matches(instance: Any) -> bool:
            if not isinstance(instance, str):
                return True
            return pattern.search(instance) is not None

        return matches

    if callable(rule):

        def accepts(instance: Any) -> bool:
            if not isinstance(instance, str):
                return True
            return bool(rule(instance))

        return accepts

    raise TypeError(f"Format rule must be a regex string or callable, got {type(rule).__name__}")


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------

def _validator_class(schema: Any):
    default = validator_for({"$schema": settings.DEFAULT_SCHEMA_DIALECT})
    if not isinstance(schema, Mapping):
        return default
    return validator_for(schema, default=default)


def compile_schema(schema: Any, options: Mapping[str, Any] | None = None) -> CompiledValidator:
    """
    Compile ``schema`` into a single-use validation function.

    Raises jsonschema's SchemaError when the schema does not conform to its
    metaschema. Unknown option keys are forwarded to the validator class and
    fail there.
    """
    extra = dict(options) if options is not None else {}
    all_errors = bool(extra.pop("allErrors", False))
    verbose = bool(extra.pop("verbose", False))
    validate_formats = extra.pop("validateFormats", True)
    formats = extra.pop("formats", None)
    validate_schema = extra.pop("validateSchema", True)

    cls = _validator_class(schema)
    if validate_schema:
        cls.check_schema(schema)

    format_checker = build_format_checker(formats) if validate_formats else None
    validator = cls(schema, format_checker=format_checker, **extra)
    logger.debug(
        "Compiled schema with %s (allErrors=%s, formats=%s)",
        cls.__name__,
        all_errors,
        format_checker is not None,
    )

    locator = SchemaLocator(schema, cls.META_SCHEMA["$schema"], extra.get("registry"))

    def run(data: Any) -> list[ErrorRecord] | None:
        errors: Iterable[ValidationError] = validator.iter_errors(data)
        if not all_errors:
            errors = islice(errors, 1)
        converter = _ErrorConverter(locator, verbose=verbose)
        records = [converter.convert(error) for error in errors]
        return records or None

    return run


# ---------------------------------------------------------------------------
# Error conversion
# ---------------------------------------------------------------------------

def json_pointer(parts: Iterable[Any]) -> str:
    """RFC 6901 pointer; the empty pointer addresses the root."""
    return "".join("/" + str(p).replace("~", "~0").replace("/", "~1") for p in parts)


def _pointer_tokens(fragment: str) -> list[str]:
    return [
        unquote(token).replace("~1", "/").replace("~0", "~")
        for token in fragment.split("/")[1:]
    ]


def _ref_location(ref: str) -> tuple[str, list[str]]:
    """Split a $ref into a location prefix and the pointer tokens after it."""
    base, _, fragment = ref.partition("#")
    if fragment.startswith("/"):
        return base + "#", _pointer_tokens(fragment)
    return base + "#" + fragment, []


def _child(node: Any, token: Any) -> Any:
    if isinstance(node, Mapping):
        return node.get(token)
    if isinstance(node, list) and isinstance(token, int) and 0 <= token < len(node):
        return node[token]
    return None


class SchemaLocator:
    """
    Maps jsonschema's schema path onto locations that exist in the schema.

    jsonschema leaves ``$ref`` hops out of ``absolute_schema_path``, so a
    path like ``properties/a/type`` may run through ``{"$ref": ...}`` at
    ``properties/a``. When the next token is not a key of a ``$ref`` node the
    reference is followed and the location restarts at its target, giving
    ``#/definitions/x/type``.
    """

    def __init__(self, schema: Any, dialect: str, registry: Registry | None = None):
        self.schema = schema
        self.dialect = dialect
        self.registry = registry if registry is not None else Registry()
        self._root_resolver = None

    def _resolver(self):
        if self._root_resolver is None:
            resource = specification_with(self.dialect).create_resource(self.schema)
            self._root_resolver = self.registry.resolver_with_root(resource)
        return self._root_resolver

    def locate(self, tokens: list[Any]) -> str:
        node, resolver = self.schema, None
        prefix, path = "#", []
        for position, token in enumerate(tokens):
            followed = set()
            while (
                isinstance(node, Mapping)
                and isinstance(node.get("$ref"), str)
                and token not in node
                and id(node) not in followed
            ):
                followed.add(id(node))
                ref = node["$ref"]
                try:
                    resolved = (resolver or self._resolver()).lookup(ref)
                except Unresolvable:
                    location, ref_path = _ref_location(ref)
                    return location + json_pointer(ref_path + list(tokens[position:]))
                node, resolver = resolved.contents, resolved.resolver
                prefix, path = _ref_location(ref)
            path.append(token)
            node = _child(node, token)
        return prefix + json_pointer(path)


def _under_property_names(schema_path: list[Any]) -> bool:
    for i, part in enumerate(schema_path):
        if part == "propertyNames" and (i == 0 or schema_path[i - 1] not in _NAMED_CHILDREN):
            return True
    return False


def _unexpected_properties(instance: Mapping, parent_schema: Mapping) -> list[str]:
    properties = parent_schema.get("properties", {})
    patterns = "|".join(parent_schema.get("patternProperties", {}))
    return [
        name
        for name in instance
        if name not in properties and not (patterns and re.search(patterns, name))
    ]


def _missing_dependencies(dependencies: Mapping, instance: Mapping) -> list[tuple[str, str, list]]:
    missing = []
    for name, deps in dependencies.items():
        if name in instance and isinstance(deps, list):
            missing.extend((name, each, deps) for each in deps if each not in instance)
    return missing


class _ErrorConverter:
    """Turns jsonschema errors into ErrorRecords for one validation run."""

    def __init__(self, locator: SchemaLocator, verbose: bool = False):
        self.locator = locator
        self.verbose = verbose
        # jsonschema yields one error per missing name for "required" and
        # the dependency keywords, in schema order
        self._seen: Counter = Counter()

    def convert(self, error: ValidationError) -> ErrorRecord:
        instance_path = list(error.absolute_path)
        schema_path = list(error.absolute_schema_path)
        keyword = error.validator if error.validator is not None else "false schema"

        record = ErrorRecord(
            keyword=keyword,
            instance_path=json_pointer(instance_path),
            schema_path=self.locator.locate(schema_path),
            params=self._params(error, instance_path, schema_path),
            message=error.message,
        )
        if _under_property_names(schema_path) and isinstance(error.instance, str):
            record.property_name = error.instance
        if self.verbose:
            record.schema_ = error.validator_value
            record.parent_schema = error.schema
            record.data = error.instance
        return record

    def _nth(self, candidates: list, instance_path: list, schema_path: list) -> Any:
        key = (tuple(instance_path), tuple(schema_path))
        index = self._seen[key]
        self._seen[key] += 1
        return candidates[index] if index < len(candidates) else None

    def _params(self, error: ValidationError, instance_path: list, schema_path: list) -> dict[str, Any]:
        keyword = error.validator
        value = error.validator_value

        if keyword == "required" and isinstance(error.instance, Mapping):
            missing = [name for name in value if name not in error.instance]
            name = self._nth(missing, instance_path, schema_path)
            return {"missingProperty": name} if name is not None else {}
        if (
            keyword in ("dependencies", "dependentRequired")
            and isinstance(error.instance, Mapping)
            and isinstance(value, Mapping)
        ):
            pair = self._nth(_missing_dependencies(value, error.instance), instance_path, schema_path)
            if pair is None:
                return {}
            name, missing, deps = pair
            return {
                "property": name,
                "missingProperty": missing,
                "depsCount": len(deps),
                "deps": ", ".join(deps),
            }
        if keyword == "type":
            return {"type": ",".join(value) if isinstance(value, list) else value}
        if keyword == "format":
            return {"format": value}
        if keyword == "enum":
            return {"allowedValues": value}
        if keyword == "const":
            return {"allowedValue": value}
        if keyword == "pattern":
            return {"pattern": value}
        if keyword == "multipleOf":
            return {"multipleOf": value}
        if keyword in _LIMIT_KEYWORDS:
            return {"limit": value}
        if keyword in _COMPARISONS:
            return {"comparison": _COMPARISONS[keyword], "limit": value}
        if (
            keyword == "additionalProperties"
            and isinstance(error.instance, Mapping)
            and isinstance(error.schema, Mapping)
        ):
            unexpected = _unexpected_properties(error.instance, error.schema)
            params: dict[str, Any] = {"additionalProperties": unexpected}
            if len(unexpected) == 1:
                params["additionalProperty"] = unexpected[0]
            return params
        return {}
