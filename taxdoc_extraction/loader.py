"""Loader utilities for form tables, the classification table and pipeline config."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from .extraction.expressions import compile_validator
from .extraction.parser import CrossCheck
from .schemas.documents import DocumentTypeCandidate, FieldSpec, ValueType

PACKAGE_ROOT = Path(__file__).resolve().parent
FORMS_DIR = PACKAGE_ROOT / "forms"
CONFIG_DIR = PACKAGE_ROOT / "config"
DOCUMENT_TYPES_PATH = CONFIG_DIR / "document_types.yaml"
PIPELINE_CONFIG_PATH = CONFIG_DIR / "pipeline.yaml"

FormTable = Dict[str, Any]


def _load_yaml_file(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def _compile_patterns(source: Path, raw: Any, flags: int = 0) -> Tuple[re.Pattern[str], ...]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise ValueError(f"{source.name}: patterns must be a list of strings")
    compiled = []
    for pattern in raw:
        try:
            compiled.append(re.compile(str(pattern), flags))
        except re.error as exc:
            raise ValueError(f"{source.name}: invalid pattern {pattern!r}: {exc}") from exc
    return tuple(compiled)


def _build_field_spec(source: Path, raw: Any) -> FieldSpec:
    if not isinstance(raw, dict):
        raise ValueError(f"{source.name}: field entries must be mappings")
    missing = [key for key in ("key", "label", "type", "patterns") if key not in raw]
    if missing:
        raise ValueError(f"{source.name}: field missing required keys: {', '.join(missing)}")

    try:
        value_type = ValueType(str(raw["type"]).lower())
    except ValueError as exc:
        raise ValueError(f"{source.name}: unknown value type {raw['type']!r} for {raw['key']}") from exc

    patterns = _compile_patterns(source, raw["patterns"])
    if not patterns:
        raise ValueError(f"{source.name}: field {raw['key']} declares no patterns")

    validator = None
    if raw.get("validator"):
        try:
            validator = compile_validator(str(raw["validator"]))
        except SyntaxError as exc:
            raise ValueError(f"{source.name}: invalid validator for {raw['key']}: {exc}") from exc

    return FieldSpec(
        key=str(raw["key"]),
        label=str(raw["label"]),
        patterns=patterns,
        value_type=value_type,
        required=bool(raw.get("required", False)),
        validator=validator,
    )


def _build_cross_check(source: Path, raw: Any) -> CrossCheck:
    if not isinstance(raw, dict) or "field" not in raw or "gross" not in raw:
        raise ValueError(f"{source.name}: cross_checks entries need 'field' and 'gross'")
    return CrossCheck(
        field=str(raw["field"]),
        gross=str(raw["gross"]),
        max_ratio=float(raw.get("max_ratio", 0.5)),
    )


def _normalize_form_table(source: Path, raw: Any) -> FormTable:
    """Normalize one form YAML payload into field specs and cross checks."""
    if not isinstance(raw, dict):
        raise ValueError(f"Form table must be a mapping: {source}")
    doc_type = raw.get("doc_type")
    if not doc_type:
        raise ValueError(f"Form table missing doc_type: {source}")

    fields = [_build_field_spec(source, entry) for entry in raw.get("fields") or []]
    keys = [spec.key for spec in fields]
    duplicates = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates:
        raise ValueError(f"{source.name}: duplicate field keys: {', '.join(duplicates)}")

    cross_checks = [_build_cross_check(source, entry) for entry in raw.get("cross_checks") or []]
    for check in cross_checks:
        if check.field not in keys or check.gross not in keys:
            raise ValueError(f"{source.name}: cross check references unknown field {check.field}/{check.gross}")

    return {
        "doc_type": str(doc_type),
        "fields": tuple(fields),
        "cross_checks": tuple(cross_checks),
        "_source": source.name,
    }


@lru_cache(maxsize=4)
def load_form_tables(forms_dir: Path | str | None = None) -> Dict[str, FormTable]:
    """Load every ``forms/*.yaml`` table keyed by document type."""
    directory = Path(forms_dir) if forms_dir else FORMS_DIR
    if not directory.exists():
        raise FileNotFoundError(f"Forms directory not found: {directory}")

    tables: Dict[str, FormTable] = {}
    for path in sorted(directory.glob("*.yaml")):
        table = _normalize_form_table(path, _load_yaml_file(path))
        if table["doc_type"] in tables:
            raise ValueError(f"Duplicate form table for {table['doc_type']}: {path.name}")
        tables[table["doc_type"]] = table
    return tables


@lru_cache(maxsize=4)
def load_document_types(path: Path | str | None = None) -> Tuple[DocumentTypeCandidate, ...]:
    """Load the classification table in declaration order."""
    source = Path(path) if path else DOCUMENT_TYPES_PATH
    if not source.exists():
        raise FileNotFoundError(f"Document type table not found: {source}")

    raw = _load_yaml_file(source) or {}
    entries = raw.get("document_types") if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise ValueError(f"{source.name}: expected a list of document types")

    candidates: List[DocumentTypeCandidate] = []
    for entry in entries:
        if not isinstance(entry, dict) or "type" not in entry:
            raise ValueError(f"{source.name}: document type entries need a 'type'")
        base = float(entry.get("base_confidence", 0.0))
        if not 0.0 <= base <= 1.0:
            raise ValueError(f"{source.name}: base_confidence for {entry['type']} must be within [0, 1]")
        candidates.append(
            DocumentTypeCandidate(
                type=str(entry["type"]),
                filename_patterns=_compile_patterns(source, entry.get("filename_patterns") or [], re.IGNORECASE),
                content_patterns=_compile_patterns(source, entry.get("content_patterns") or [], re.IGNORECASE),
                base_confidence=base,
            )
        )
    return tuple(candidates)


@lru_cache(maxsize=4)
def load_pipeline_config(path: Path | str | None = None) -> Dict[str, Any]:
    source = Path(path) if path else PIPELINE_CONFIG_PATH
    if not source.exists():
        raise FileNotFoundError(f"Pipeline config not found at {source}")
    raw = _load_yaml_file(source) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Pipeline config must be a mapping: {source}")
    return raw


def reload_caches() -> None:
    """Clear cached loaders (useful for tests)."""
    load_form_tables.cache_clear()
    load_document_types.cache_clear()
    load_pipeline_config.cache_clear()
