"""Load field schemas from YAML documents.

A schema document maps field names to schemas:

    fields:
      email:
        rules:
          - kind: required
          - kind: email
            message: Please enter a valid email
      confirm_email:
        rules:
          - kind: field_match
            params: email

Documents are checked against the bundled JSON Schema before they are
converted. Custom checks can only be referenced by id from a document.

PyYAML quirk: the bare key ``on:`` is parsed as boolean ``True``, not the
string ``"on"``. Loaded documents are preprocessed to rename that key.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Mapping

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError as JSONSchemaError

from fieldcheck.exceptions import SchemaError
from fieldcheck.types import RuleKind, Schema

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).parent / "schemas" / "fieldcheck.schema.json"


@dataclass
class SchemaIssue:
    """A single finding for a schema document."""

    message: str
    path: str = ""          # location within the document, e.g. "fields/email/rules[0]"
    severity: str = "error" # "error" | "warning"
    file: Path | None = None

    def __str__(self) -> str:
        where = str(self.file) if self.file else "<document>"
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {where}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _document_validator() -> Draft202012Validator:
    with _SCHEMA_PATH.open() as fh:
        return Draft202012Validator(json.load(fh))


def _preprocess_on_key(obj: Any) -> Any:
    """Recursively rename the boolean key ``True`` to ``"on"``."""
    if isinstance(obj, dict):
        return {("on" if k is True else k): _preprocess_on_key(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_preprocess_on_key(item) for item in obj]
    return obj


def _json_path(error: JSONSchemaError) -> str:
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _walk_rules(rules: Any, path: str) -> Iterator[tuple[str, Mapping[str, Any]]]:
    """Yield (path, rule) for every rule, including nested conditional rules."""
    if not isinstance(rules, list):
        return
    for index, rule in enumerate(rules):
        if not isinstance(rule, Mapping):
            continue
        rule_path = f"{path}[{index}]"
        yield rule_path, rule
        params = rule.get("params")
        if isinstance(params, Mapping):
            yield from _walk_rules(params.get("rules"), f"{rule_path}/params/rules")


def _read_yaml(path: Path) -> Any:
    try:
        with path.open() as fh:
            return yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise SchemaError(f"YAML parse error in {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_schema_document(
    document: Any,
    *,
    strict_kinds: bool = False,
    file: Path | None = None,
) -> list[SchemaIssue]:
    """Check a parsed schema document.

    Args:
        document: Parsed YAML/JSON data
        strict_kinds: Report kinds outside the catalog as errors, not warnings
        file: Source file, for issue reporting

    Returns:
        A list of SchemaIssue objects (empty when the document is clean).
    """
    if document is None:
        return [SchemaIssue(message="Document is empty", file=file)]

    doc = _preprocess_on_key(document)
    issues = [
        SchemaIssue(message=error.message, path=_json_path(error), file=file)
        for error in sorted(_document_validator().iter_errors(doc), key=lambda e: [str(p) for p in e.path])
    ]

    fields = doc.get("fields") if isinstance(doc, Mapping) else None
    if isinstance(fields, Mapping):
        for name, schema in fields.items():
            if not isinstance(schema, Mapping):
                continue
            for rule_path, rule in _walk_rules(schema.get("rules"), f"fields/{name}/rules"):
                kind = rule.get("kind", rule.get("type"))
                if isinstance(kind, str) and not RuleKind.is_known(kind):
                    issues.append(
                        SchemaIssue(
                            message=f"Unknown rule kind '{kind}'",
                            path=rule_path,
                            severity="error" if strict_kinds else "warning",
                            file=file,
                        )
                    )

    return issues


def validate_schema_file(path: Path, *, strict_kinds: bool = False) -> list[SchemaIssue]:
    """Check a YAML schema file. Parse errors are reported as issues."""
    try:
        document = _read_yaml(path)
    except SchemaError as exc:
        return [SchemaIssue(message=str(exc), file=path)]
    return validate_schema_document(document, strict_kinds=strict_kinds, file=path)


def parse_schemas(document: Any, *, strict_kinds: bool = False) -> dict[str, Schema]:
    """Convert a schema document into field name -> Schema.

    Raises:
        SchemaError: If the document has error-severity issues
    """
    issues = validate_schema_document(document, strict_kinds=strict_kinds)
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        raise SchemaError(
            f"{len(errors)} schema error(s): " + "; ".join(str(e) for e in errors)
        )
    for issue in issues:
        logger.warning("%s", issue)

    doc = _preprocess_on_key(document)
    return {
        name: Schema.from_dict(data, field_name=name)
        for name, data in doc["fields"].items()
    }


def load_schemas(path: Path, *, strict_kinds: bool = False) -> dict[str, Schema]:
    """Load field schemas from a YAML file."""
    return parse_schemas(_read_yaml(path), strict_kinds=strict_kinds)


def load_values(path: Path) -> dict[str, Any]:
    """Load a field values mapping from a YAML or JSON file."""
    data = _read_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise SchemaError(f"Values file {path} must contain a mapping")
    return dict(data)
