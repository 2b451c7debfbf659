"""Schema validation for raw Blockbook responses."""

from __future__ import annotations

import functools
from typing import Any, get_args, get_origin

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import BlockbookValidationError


@functools.lru_cache(maxsize=None)
def _adapter(schema: Any) -> TypeAdapter[Any]:
    return TypeAdapter(schema)


def schema_name(schema: Any) -> str:
    """Readable name for a model class or a generic alias like list[Model]."""
    origin = get_origin(schema)
    if origin is None:
        return getattr(schema, "__name__", repr(schema))
    args = ", ".join(schema_name(arg) for arg in get_args(schema))
    return f"{getattr(origin, '__name__', repr(origin))}[{args}]"


class ResponseValidator:
    """Check raw responses against schemas, or pass them through.

    In strict mode a mismatch raises BlockbookValidationError. In
    permissive mode values are returned unchanged without any checks.
    Either way the raw JSON value is what the caller gets back.
    """

    def __init__(self, *, strict: bool = True) -> None:
        self._strict = strict

    @property
    def strict(self) -> bool:
        return self._strict

    def validate(self, schema: Any, value: Any) -> Any:
        if not self._strict:
            return value
        try:
            _adapter(schema).validate_python(value)
        except PydanticValidationError as err:
            raise BlockbookValidationError(
                schema_name(schema), value, f"{err.error_count()} error(s)"
            ) from err
        return value
