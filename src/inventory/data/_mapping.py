"""Record-to-dataclass mapping with type coercion.

Records are plain ``dict`` rows. Callers that want typed access map them
onto frozen dataclasses; only keys naming a dataclass field are used.

SQLite stores whatever it is given, so an ``int`` column can come back as
``"45"``. Fields annotated ``int``, ``float``, ``bool`` or ``str`` coerce
such values; empty strings become ``0`` / ``0.0``.
"""

import dataclasses
import types
from collections.abc import Iterable, Mapping
from typing import Any, get_args, get_origin

_COERCIBLE: dict[type, Any] = {
    int: lambda v: int(v) if v != "" else 0,
    float: lambda v: float(v) if v != "" else 0.0,
    bool: lambda v: bool(int(v)) if isinstance(v, str) else bool(v),
    str: str,
}


def _build_coercion_map(cls: type) -> dict[str, type | None]:
    """Build a {field_name: target_type} map, ``None`` where no coercion applies."""
    if not dataclasses.is_dataclass(cls):
        msg = f"{cls.__name__} is not a dataclass; records map onto dataclasses only"
        raise TypeError(msg)

    result: dict[str, type | None] = {}
    for f in dataclasses.fields(cls):
        annotation = f.type
        # X | None coerces to X
        if get_origin(annotation) is types.UnionType:
            args = [a for a in get_args(annotation) if a is not type(None)]
            annotation = args[0] if len(args) == 1 else None
        result[f.name] = annotation if annotation in _COERCIBLE else None
    return result


def _coerce(value: Any, target: type | None) -> Any:
    if target is None or value is None or isinstance(value, target):
        return value
    return _COERCIBLE[target](value)


def map_row[T](cls: type[T], row: Mapping[str, Any]) -> T:
    """Map one record onto a dataclass instance.

    Extra columns are ignored. Raises ``TypeError`` if a required field is
    missing from the record.
    """
    return map_rows(cls, [row])[0]


def map_rows[T](cls: type[T], rows: Iterable[Mapping[str, Any]]) -> list[T]:
    """Map records onto dataclass instances."""
    coercion = _build_coercion_map(cls)
    return [
        cls(**{k: _coerce(v, coercion[k]) for k, v in row.items() if k in coercion})
        for row in rows
    ]
