"""
Column converters for JSON documents embedded in SQLite columns.

Provides:
- EmbeddedDocumentConverter: dataclass <-> JSON text, one instance for both directions
- QualityIntConverter: field transform storing a quality as its integer id
- try_deserialize: tolerant read that reports failure instead of raising

A field transform is any object with:
  - handles: the Python type it converts
  - can_write(value) -> bool
  - write(value) -> JSON-compatible value
  - read(raw) -> value of type `handles`
"""

import json
from dataclasses import MISSING, fields, is_dataclass
from typing import Any, Callable, Optional, get_type_hints

from qualities import QualityDefinition, find_by_id

# Exceptions that mean "this blob is not in the expected shape".
# RecursionError: json.loads on pathologically nested input
PARSE_ERRORS = (ValueError, TypeError, KeyError, AttributeError, RecursionError)

_PRIMITIVES = (bool, int, float, str)


class QualityIntConverter:
    """
    Store a quality as its bare id.

    Reading maps the id back to its catalog entry when a catalog is given,
    otherwise the id is returned unchanged.
    """

    handles = QualityDefinition

    def __init__(self, catalog=None):
        self.catalog = list(catalog) if catalog is not None else None

    def can_write(self, value) -> bool:
        return isinstance(value, QualityDefinition)

    def write(self, value) -> int:
        return value.id

    def read(self, raw):
        if not isinstance(raw, int) or isinstance(raw, bool):
            raise ValueError(f"Quality id must be an integer, got {raw!r}")
        if self.catalog is None:
            return raw
        definition = find_by_id(self.catalog, raw)
        if definition is None:
            raise ValueError(f"Unknown quality id: {raw}")
        return definition


class EmbeddedDocumentConverter:
    """
    Serialize a dataclass (or a list of them) to JSON text and back.

    Args:
        document_type: Dataclass describing one document
        transform: Optional field transform (see module docstring)
        many: Column holds a JSON list of documents instead of one
    """

    def __init__(self, document_type, transform=None, many: bool = False):
        if not is_dataclass(document_type):
            raise TypeError(f"{document_type!r} is not a dataclass")
        self.document_type = document_type
        self.transform = transform
        self.many = many

    def to_db(self, value) -> Optional[str]:
        """Serialize for an UPDATE/INSERT parameter. None becomes NULL."""
        if value is None:
            return None
        return json.dumps(value, default=self._encode, separators=(",", ":"))

    def from_db(self, blob: Optional[str]):
        """
        Deserialize a column value. NULL becomes None.

        Raises:
            ValueError: blob is not JSON or not in the document shape
        """
        if blob is None:
            return None
        data = json.loads(blob)
        if self.many:
            if not isinstance(data, list):
                raise ValueError(f"Expected a JSON list, got {type(data).__name__}")
            return [self._build(self.document_type, item) for item in data]
        return self._build(self.document_type, data)

    def try_from_db(self, blob: Optional[str]) -> tuple[Any, bool]:
        return try_deserialize(blob, self.from_db)

    def _encode(self, obj):
        # json.dumps calls this for anything it cannot encode natively
        if self.transform is not None and self.transform.can_write(obj):
            return self.transform.write(obj)
        if is_dataclass(obj) and not isinstance(obj, type):
            return {f.name: getattr(obj, f.name) for f in fields(obj)}
        raise TypeError(f"Object of type {type(obj).__name__} is not serializable")

    def _build(self, cls, data):
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object for {cls.__name__}, got {data!r}")

        # Resolves string annotations from modules using postponed evaluation
        hints = get_type_hints(cls)
        kwargs = {}
        for f in fields(cls):
            field_type = hints.get(f.name, f.type)
            if f.name not in data:
                if f.default is MISSING and f.default_factory is MISSING:
                    raise ValueError(f"{cls.__name__}: missing field '{f.name}'")
                continue

            raw = data[f.name]
            if self.transform is not None and field_type is self.transform.handles:
                kwargs[f.name] = self.transform.read(raw)
            elif is_dataclass(field_type):
                kwargs[f.name] = self._build(field_type, raw)
            elif field_type in _PRIMITIVES:
                kwargs[f.name] = _check_primitive(cls, f.name, field_type, raw)
            else:
                kwargs[f.name] = raw

        return cls(**kwargs)


def _check_primitive(cls, name: str, expected: type, raw):
    # bool is an int subclass; JSON true/false must not pass as ids and vice versa
    if expected is float and isinstance(raw, int) and not isinstance(raw, bool):
        return float(raw)
    if type(raw) is not expected:
        raise ValueError(
            f"{cls.__name__}.{name}: expected {expected.__name__}, got {raw!r}"
        )
    return raw


def try_deserialize(blob, parse: Callable) -> tuple[Any, bool]:
    """
    Tolerant read.

    Returns:
        (value, True) on success, (None, False) for NULL or malformed input
    """
    if blob is None:
        return None, False
    try:
        return parse(blob), True
    except PARSE_ERRORS:
        return None, False
