"""Schema generator - converts a handler's input model to JSON Schema.

Handlers take exactly one argument, annotated with a Pydantic model. The
generated schema is sent to the control plane as a standalone JSON string,
so it must be fully self-contained: nested models are inlined when they are
a direct field of their parent, and rejected when they would need a shared
``$defs`` entry (reached through an array, a dict or recursively).
"""

import datetime
import enum
import inspect
import types
import uuid
from collections.abc import Callable, Mapping, Sequence
from decimal import Decimal
from typing import Any, Literal, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from inferable.kernel.exceptions import (
    InvalidHandlerError,
    SchemaGenerationError,
    SchemaReferenceError,
)
from inferable.kernel.logging import get_logger
from inferable.kernel.utils.serialization import is_json_serializable

logger = get_logger(__name__)

_ARRAY_ORIGINS = (list, tuple, set, frozenset, Sequence)
_MAPPING_ORIGINS = (dict, Mapping)


class SchemaGenerator:
    """Generate JSON Schema from a handler's input model.

    Supports:
    - Basic types (str, int, float, bool, None)
    - Literal types and Enum subclasses → enum
    - Optional types → nullable
    - Other unions → anyOf
    - list/tuple/set → array, dict[str, T] → object with additionalProperties
    - datetime/date/time/UUID/Decimal → string with format
    - Direct nested models → inline objects

    Examples
    --------
    >>> from pydantic import BaseModel
    >>> class Sum(BaseModel):
    ...     a: int
    ...     b: int = 0
    >>> SchemaGenerator.from_model("sum", Sum)["required"]
    ['a']
    """

    # Basic type mapping from Python to JSON Schema
    BASIC_TYPE_MAP: dict[Any, dict[str, Any]] = {
        str: {"type": "string"},
        int: {"type": "integer"},
        float: {"type": "number"},
        bool: {"type": "boolean"},
        bytes: {"type": "string"},
        None: {"type": "null"},
        type(None): {"type": "null"},
        datetime.datetime: {"type": "string", "format": "date-time"},
        datetime.date: {"type": "string", "format": "date"},
        datetime.time: {"type": "string", "format": "time"},
        uuid.UUID: {"type": "string", "format": "uuid"},
        Decimal: {"type": "number"},
    }

    @staticmethod
    def for_handler(
        function_name: str, handler: Callable[..., Any]
    ) -> tuple[type[BaseModel], dict[str, Any]]:
        """Validate a handler's signature and build the schema of its input.

        Args
        ----
            function_name: Registered name, used in error messages
            handler: Sync or async callable with exactly one parameter

        Returns
        -------
            tuple[type[BaseModel], dict]: The input model and its schema

        Raises
        ------
        InvalidHandlerError
            If the handler is not callable, does not take exactly one
            argument, or that argument is not annotated with a model
        SchemaGenerationError
            If the model cannot be described (see :meth:`from_model`)
        """
        if not callable(handler):
            raise InvalidHandlerError(function_name, "must be callable")

        try:
            sig = inspect.signature(handler)
        except (ValueError, TypeError) as e:
            raise InvalidHandlerError(function_name, f"has no inspectable signature: {e}") from e

        params = list(sig.parameters.values())
        if len(params) != 1 or params[0].kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
            inspect.Parameter.KEYWORD_ONLY,
        ):
            raise InvalidHandlerError(function_name, "must have exactly one argument")

        param = params[0]
        annotation = param.annotation
        try:
            # Resolve string annotations (PEP 563)
            target = handler if inspect.isroutine(handler) else type(handler).__call__
            annotation = get_type_hints(target).get(param.name, annotation)
        except (NameError, TypeError) as e:
            logger.debug("Could not resolve type hints for {}: {}", function_name, e)

        if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
            shown = getattr(annotation, "__name__", repr(annotation))
            if annotation is inspect.Parameter.empty:
                shown = "an unannotated parameter"
            raise InvalidHandlerError(
                function_name, f"argument must be a pydantic model, got {shown}"
            )

        return annotation, SchemaGenerator.from_model(function_name, annotation)

    @staticmethod
    def from_model(function_name: str, model: type[BaseModel]) -> dict[str, Any]:
        """Generate the top-level object schema of ``model``.

        The top level carries no ``additionalProperties`` key; nested objects
        are closed with ``additionalProperties: false``. ``required`` lists
        exactly the fields without a default.

        A model used directly as a field is inlined, even though it is a
        named type that a struct-reflecting generator would emit as a
        ``$ref``; only collection members and recursive models are rejected.

        Raises
        ------
        SchemaReferenceError
            If a model is reached through a collection or recursively
        SchemaGenerationError
            If a field type cannot be represented
        """
        schema = SchemaGenerator._object_schema(function_name, model, stack=(model,))
        schema.pop("additionalProperties", None)
        return schema

    @staticmethod
    def _object_schema(
        function_name: str, model: type[BaseModel], stack: tuple[type[BaseModel], ...]
    ) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        required: list[str] = []

        for field_name, info in model.model_fields.items():
            key = info.alias or field_name
            prop_schema = SchemaGenerator._field_schema(function_name, info, stack)
            properties[key] = prop_schema
            if info.is_required():
                required.append(key)

        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if model.__doc__ and stack[-1] is not stack[0]:
            description = inspect.cleandoc(model.__doc__).split("\n")[0].strip()
            if description:
                schema["description"] = description
        schema["additionalProperties"] = False
        if required:
            schema["required"] = required
        return schema

    @staticmethod
    def _field_schema(
        function_name: str, info: FieldInfo, stack: tuple[type[BaseModel], ...]
    ) -> dict[str, Any]:
        schema = SchemaGenerator._type_to_json_schema(
            function_name, info.annotation, stack, direct=True
        )
        if info.description:
            schema["description"] = info.description
        # Only plain JSON defaults are advertised; None and factories are skipped
        if (
            not info.is_required()
            and info.default is not None
            and is_json_serializable(info.default)
        ):
            schema["default"] = info.default
        return schema

    @staticmethod
    def _type_to_json_schema(
        function_name: str,
        type_hint: Any,
        stack: tuple[type[BaseModel], ...],
        direct: bool,
    ) -> dict[str, Any]:
        """Convert a Python type hint to a JSON Schema fragment.

        ``direct`` is False once the walk has entered a collection; a model
        found there would need an external reference.
        """
        if type_hint is Any or type_hint is object:
            return {}

        # Python 3.12+ type aliases have __value__
        if hasattr(type_hint, "__value__"):
            return SchemaGenerator._type_to_json_schema(
                function_name, type_hint.__value__, stack, direct
            )

        origin = get_origin(type_hint)
        args = get_args(type_hint)

        # Annotated[T, ...] → T (pydantic has already extracted Field metadata)
        if origin is not None and hasattr(type_hint, "__metadata__"):
            return SchemaGenerator._type_to_json_schema(function_name, args[0], stack, direct)

        if origin is Literal:
            values = [v.value if isinstance(v, enum.Enum) else v for v in args]
            literal_schema: dict[str, Any] = {"enum": values}
            json_types = {
                SchemaGenerator.BASIC_TYPE_MAP.get(type(v), {}).get("type") for v in values
            }
            if len(json_types) == 1 and None not in json_types:
                literal_schema = {"type": json_types.pop(), "enum": values}
            return literal_schema

        if origin is Union or origin is types.UnionType:
            non_none = [arg for arg in args if arg is not type(None)]
            nullable = len(non_none) < len(args)
            schemas = [
                SchemaGenerator._type_to_json_schema(function_name, arg, stack, direct)
                for arg in non_none
            ]
            if len(schemas) == 1:
                schema = schemas[0]
                if not nullable:
                    return schema
                if isinstance(schema.get("type"), str) and "enum" not in schema:
                    schema["type"] = [schema["type"], "null"]
                    return schema
                return {"anyOf": [schema, {"type": "null"}]}
            if nullable:
                schemas.append({"type": "null"})
            return {"anyOf": schemas}

        if origin in _ARRAY_ORIGINS or type_hint in (list, tuple, set, frozenset):
            if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
                args = args[:1]
            if origin is tuple and len(args) > 1:
                items = [
                    SchemaGenerator._type_to_json_schema(function_name, arg, stack, direct=False)
                    for arg in args
                ]
                return {
                    "type": "array",
                    "prefixItems": items,
                    "minItems": len(items),
                    "maxItems": len(items),
                }
            item_type = args[0] if args else Any
            return {
                "type": "array",
                "items": SchemaGenerator._type_to_json_schema(
                    function_name, item_type, stack, direct=False
                ),
            }

        if origin in _MAPPING_ORIGINS or type_hint is dict:
            if len(args) == 2 and args[1] is not Any:
                return {
                    "type": "object",
                    "additionalProperties": SchemaGenerator._type_to_json_schema(
                        function_name, args[1], stack, direct=False
                    ),
                }
            return {"type": "object"}

        if isinstance(type_hint, type) and issubclass(type_hint, BaseModel):
            if not direct or type_hint in stack:
                raise SchemaReferenceError(function_name, type_hint.__name__)
            return SchemaGenerator._object_schema(
                function_name, type_hint, stack=(*stack, type_hint)
            )

        if isinstance(type_hint, type) and issubclass(type_hint, enum.Enum):
            values = [member.value for member in type_hint]
            enum_schema: dict[str, Any] = {"enum": values}
            json_types = {
                SchemaGenerator.BASIC_TYPE_MAP.get(type(v), {}).get("type") for v in values
            }
            if len(json_types) == 1 and None not in json_types:
                enum_schema = {"type": json_types.pop(), "enum": values}
            return enum_schema

        if type_hint in SchemaGenerator.BASIC_TYPE_MAP:
            return SchemaGenerator.BASIC_TYPE_MAP[type_hint].copy()

        shown = getattr(type_hint, "__name__", repr(type_hint))
        raise SchemaGenerationError(function_name, f"unsupported field type {shown}")
