"""Models serialized through marshmallow schemas."""

import json
import logging
from abc import ABC
from typing import Optional, Type, TypeVar

from marshmallow import EXCLUDE, Schema, ValidationError, post_dump, post_load, pre_load

from ...core.error import BaseError
from ...utils.classloader import ClassLoader

LOGGER = logging.getLogger(__name__)


def resolve_class(the_cls, relative_cls: Optional[type] = None) -> type:
    """
    Return `the_cls`, loading it first when given as a name.

    Bare class names are looked up in the module of `relative_cls`, so a
    model and its schema may name each other before both are defined.
    """
    if isinstance(the_cls, type):
        return the_cls
    if isinstance(the_cls, str):
        return ClassLoader.load_class(
            the_cls, relative_cls.__module__ if relative_cls else None
        )
    raise TypeError(f"Cannot resolve a class from {type(the_cls).__name__}")


def resolve_meta_property(obj, prop_name: str, defval=None):
    """Find a `Meta` attribute on an object or class, walking its bases."""
    cls = obj if isinstance(obj, type) else type(obj)
    for klass in cls.__mro__:
        meta = klass.__dict__.get("Meta")
        if meta is not None and hasattr(meta, prop_name):
            return getattr(meta, prop_name)
    return defval


class BaseModelError(BaseError):
    """A model could not be loaded from, or dumped to, its JSON form."""


ModelType = TypeVar("ModelType", bound="BaseModel")


class BaseModel(ABC):
    """
    A plain object paired with a `BaseModelSchema`.

    Subclasses name their schema in `Meta.schema_class`. Unknown fields
    are dropped on load unless the schema's Meta says otherwise.
    """

    class Meta:
        """BaseModel metadata."""

        schema_class = None

    def __init__(self):
        """Initialize BaseModel."""
        if not self.Meta.schema_class:
            raise TypeError(f"{self.__class__.__name__} has no schema_class")

    @classmethod
    def _schema(cls, unknown: Optional[str] = None) -> "BaseModelSchema":
        schema_cls = resolve_class(cls.Meta.schema_class, cls)
        if not issubclass(schema_cls, BaseModelSchema):
            raise TypeError(f"{schema_cls} is not a BaseModelSchema")
        return schema_cls(
            unknown=unknown or resolve_meta_property(schema_cls, "unknown", EXCLUDE)
        )

    @classmethod
    def deserialize(
        cls: Type[ModelType], obj, *, unknown: Optional[str] = None
    ) -> ModelType:
        """
        Load a model from a dict or a JSON string.

        Raises:
            BaseModelError: If the data does not satisfy the schema

        """
        schema = cls._schema(unknown)
        try:
            return schema.loads(obj) if isinstance(obj, str) else schema.load(obj)
        except (AttributeError, TypeError, ValueError, ValidationError) as err:
            LOGGER.debug("%s validation error: %s", cls.__name__, err)
            raise BaseModelError(f"{cls.__name__} schema validation failed") from err

    def serialize(self, *, unknown: Optional[str] = None) -> dict:
        """
        Dump the model to a JSON-compatible dict.

        Raises:
            BaseModelError: If the model does not satisfy its schema

        """
        try:
            return self._schema(unknown).dump(self)
        except (AttributeError, ValidationError) as err:
            LOGGER.exception("%s serialization error", self.__class__.__name__)
            raise BaseModelError(
                f"{self.__class__.__name__} schema validation failed"
            ) from err

    def to_json(self, unknown: str = None) -> str:
        return json.dumps(self.serialize(unknown=unknown))

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.__dict__.items())
        return f"<{self.__class__.__name__}({fields})>"


class BaseModelSchema(Schema):
    """
    Schema loading into, and dumping from, a `BaseModel`.

    Dump drops every value listed in `Meta.skip_values`, which is
    `None` by default.
    """

    class Meta:
        """BaseModelSchema metadata."""

        model_class = None
        skip_values = [None]
        ordered = True

    def __init__(self, *args, **kwargs):
        """Initialize BaseModelSchema."""
        super().__init__(*args, **kwargs)
        if not self.Meta.model_class:
            raise TypeError(f"{self.__class__.__name__} has no model_class")

    @property
    def Model(self) -> type:
        return resolve_class(self.Meta.model_class, type(self))

    @pre_load
    def skip_dump_only(self, data, **kwargs):
        """Ignore incoming values for fields that are only produced on dump."""
        if not isinstance(data, dict):
            return data
        dump_only = {
            field.data_key or name
            for name, field in self.fields.items()
            if field.dump_only
        }
        return {key: value for key, value in data.items() if key not in dump_only}

    @post_load
    def make_model(self, data: dict, **kwargs):
        return self.Model(**data)

    @post_dump
    def remove_skipped_values(self, data, **kwargs):
        skip_values = resolve_meta_property(self, "skip_values", [])
        return {key: value for key, value in data.items() if value not in skip_values}
