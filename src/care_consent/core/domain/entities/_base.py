from __future__ import annotations

import uuid
from dataclasses import fields
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

E = TypeVar("E", bound="EntityMixin")


class EntityMixin:
    """
    ORM ⇄ domain entity conversion.

    `from_model` copies same-named attributes from the Django model (or any
    object exposing them); foreign keys are read through `<field>_id`.
    """

    @classmethod
    def from_model(cls: type[E], model: Any, **overrides: Any) -> E:
        data: dict[str, Any] = {}
        for f in fields(cls):  # type: ignore[arg-type]
            if f.name in overrides:
                data[f.name] = overrides[f.name]
            elif hasattr(model, f.name):
                data[f.name] = getattr(model, f.name)
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: to_primitive(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]


def to_primitive(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list | tuple):
        return [to_primitive(v) for v in value]
    return value
