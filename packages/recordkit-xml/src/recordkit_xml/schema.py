"""Declarative element schemas for record extraction.

An :class:`ElementSchema` names the repeating *record* element and lists
the fields to project out of each instance.  Each field is one of three
variants, discriminated on ``type``:

- :class:`TextField` -- trimmed text of the first child with that name.
- :class:`ObjectField` -- first child with that name, projected through
  nested ``fields``.
- :class:`ArrayField` -- every child with that name, each projected
  through ``item_schema`` (``itemSchema`` in JSON/YAML documents).

Names are matched case-insensitively against local tag names; namespace
prefixes cannot be used to tell two elements apart.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from recordkit_xml.config import load_mapping_file
from recordkit_xml.errors import SchemaError


class TextField(BaseModel):
    """Extract the trimmed text content of the first matching child."""

    type: Literal["text"] = "text"
    name: str = Field(min_length=1)

    @property
    def match_name(self) -> str:
        return self.name.lower()


class ObjectField(BaseModel):
    """Project the first matching child through nested fields."""

    type: Literal["object"] = "object"
    name: str = Field(min_length=1)
    fields: list[FieldSchema] = Field(default_factory=list)

    @property
    def match_name(self) -> str:
        return self.name.lower()


class ArrayField(BaseModel):
    """Project every matching child through ``item_schema``, in order."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["array"] = "array"
    name: str = Field(min_length=1)
    item_schema: list[FieldSchema] = Field(default_factory=list, alias="itemSchema")

    @property
    def match_name(self) -> str:
        return self.name.lower()


FieldSchema = Annotated[
    Union[TextField, ObjectField, ArrayField],
    Field(discriminator="type"),
]

ObjectField.model_rebuild()
ArrayField.model_rebuild()


class ElementSchema(BaseModel):
    """Which element is a record, and how to project each one."""

    model_config = ConfigDict(populate_by_name=True)

    root_element: str = Field(alias="rootElement", min_length=1)
    fields: list[FieldSchema] = Field(default_factory=list)

    @property
    def match_name(self) -> str:
        return self.root_element.lower()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ElementSchema:
        """Validate a plain mapping (camelCase or snake_case keys).

        Raises
        ------
        SchemaError
            If the mapping does not describe a valid schema.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise SchemaError(f"Invalid element schema: {exc}") from exc

    @classmethod
    def from_file(cls, path: str) -> ElementSchema:
        """Load a schema from a YAML or JSON file.

        A missing file raises ``FileNotFoundError`` and an unsupported
        extension raises ``ValueError``, as for configuration files.
        Unparseable or invalid content raises :class:`SchemaError`.
        """
        try:
            data = load_mapping_file(path)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise SchemaError(f"Cannot parse schema file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SchemaError(
                f"Schema file {path} must contain a mapping, "
                f"got {type(data).__name__}"
            )
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the camelCase document keys."""
        return self.model_dump(by_alias=True)
