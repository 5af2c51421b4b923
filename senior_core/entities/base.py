"""senior_core/entities/base.py"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

E = TypeVar("E", bound="Entity")


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


class LenientEnum(str, Enum):
    """String enum that resolves case-insensitively and falls back to its `default()` member."""

    @classmethod
    def default(cls):
        return None

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.default()


class Entity(BaseModel):
    """Flat record stored as a document with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _blank_dates(cls, data: Any) -> Any:
        # Unset dates are stored as "" by older clients
        if not isinstance(data, dict):
            return data
        date_keys = set()
        for name, info in cls.model_fields.items():
            if datetime in (info.annotation, *getattr(info.annotation, "__args__", ())):
                date_keys.update((name, info.alias or name))
        return {k: (None if k in date_keys and v == "" else v) for k, v in data.items()}

    def to_map(self) -> Dict[str, Any]:
        """Document representation: camelCase keys, enums as their string values."""
        return _plain(self.model_dump(by_alias=True))

    @classmethod
    def from_map(cls: Type[E], data: Dict[str, Any]) -> E:
        return cls.model_validate(data or {})
