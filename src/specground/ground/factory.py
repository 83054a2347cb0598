"""
Value factories.

A factory synthesises runtime values from a (literal, descriptor) pair and
computes successor and predecessor values for equivalence-class probing.

ModelFactory works in the bracket grammar and represents external types as
Entity values. HostFactory works in the angle grammar and is what generated
drivers instantiate: it constructs external types from a registry of
constructors and from configured source packages.
"""

from __future__ import annotations

import importlib
import inspect
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any, ClassVar

from specground.core.errors import (
    ExternalTypeError,
    LiteralError,
    ResolutionFailure,
)
from specground.ground.descriptors import (
    DescriptorKind,
    Grammar,
    TypeDescriptor,
    is_balanced,
    parse_descriptor,
    safe_split,
)
from specground.ground.values import Entity, Pair

logger = logging.getLogger(__name__)

STRING_SUCCESSOR_SUFFIX = "~Z"
STRING_PREDECESSOR_PREFIX = "A-"
FLOAT_STEP = 0.3
CHARACTER_FLOOR = "0"
DEFAULT_ELEMENT = "?"

INTEGRAL_TYPES = frozenset({"Integer", "Long", "Short", "Byte"})
FLOATING_TYPES = frozenset({"Double", "Float"})

_PRIMITIVE_DEFAULTS: dict[str, Any] = {
    "String": "",
    "Integer": 0,
    "Long": 0,
    "Short": 0,
    "Byte": 0,
    "Double": 0.0,
    "Float": 0.0,
    "Boolean": False,
    "Character": CHARACTER_FLOOR,
}


def make_entity_id(type_name: str) -> str:
    """Manufacture an identifier for an external type, e.g. Vat -> vat1."""
    return type_name[:4].lower() + "1"


def _convert_primitive(literal: str, name: str) -> Any:
    """
    Convert a non-empty literal to a primitive value.

    Boolean literals are strict: only "true" and "false" (any case) convert,
    and any other text is a LiteralError rather than being read as false.
    """
    if name == "String":
        return literal
    if name == "Character":
        return literal[0]
    if name == "Boolean":
        lowered = literal.strip().lower()
        if lowered not in ("true", "false"):
            raise LiteralError(f"Not a Boolean value: {literal}", literal)
        return lowered == "true"
    try:
        if name in INTEGRAL_TYPES:
            return int(literal.strip())
        return float(literal.strip())
    except ValueError as e:
        raise LiteralError(f"Not a {name} value: {literal}", literal) from e


def _decode_primitive(data: Any, name: str) -> Any:
    """Check a decoded JSON scalar against a primitive type."""
    if name in ("String", "Character"):
        if not isinstance(data, str):
            raise LiteralError(f"Not a {name} value: {data!r}", str(data))
        if name == "Character":
            return data[:1] or CHARACTER_FLOOR
        return data
    if name == "Boolean":
        if not isinstance(data, bool):
            raise LiteralError(f"Not a Boolean value: {data!r}", str(data))
        return data
    if isinstance(data, bool) or not isinstance(data, (int, float)):
        raise LiteralError(f"Not a {name} value: {data!r}", str(data))
    if name in INTEGRAL_TYPES:
        if isinstance(data, float) and not data.is_integer():
            raise LiteralError(f"Not a {name} value: {data!r}", str(data))
        return int(data)
    return float(data)


def _json_array(data: Any, descriptor: TypeDescriptor) -> list[Any]:
    if not isinstance(data, list):
        raise LiteralError(f"Expected a JSON array for {descriptor}: {data!r}", str(data))
    return data


class AbstractFactory(ABC):
    """
    Shared value synthesis for both grammars.

    Subclasses fix the grammar in which textual descriptors are read and
    decide how external types are constructed.
    """

    grammar: ClassVar[Grammar]

    def descriptor(self, descriptor: TypeDescriptor | str) -> TypeDescriptor:
        """Accept either a parsed descriptor or its text in this factory's grammar."""
        if isinstance(descriptor, TypeDescriptor):
            return descriptor
        return parse_descriptor(descriptor, self.grammar)

    def create(self, literal: str | None, type_text: str) -> Any:
        """
        Create a value from a literal and a textual descriptor.

        This is the entry point used by generated drivers, e.g.
        ``factory.create("[1, 2]", "ArrayList<Integer>")``.
        """
        return self.create_value(literal, self.descriptor(type_text))

    def create_default(self, descriptor: TypeDescriptor | str) -> Any:
        return self.create_value(None, descriptor)

    def create_value(self, literal: str | None, descriptor: TypeDescriptor | str) -> Any:
        """
        Create a value from a literal, dispatching on the descriptor kind.

        An absent or empty literal yields the default value of the descriptor.

        Raises:
            LiteralError: if the literal does not fit the descriptor
            ExternalTypeError: if an external type cannot be constructed
        """
        descriptor = self.descriptor(descriptor)
        literal = literal or None
        kind = descriptor.kind
        if kind is DescriptorKind.PRIMITIVE:
            if literal is None:
                return _PRIMITIVE_DEFAULTS[descriptor.name]
            return _convert_primitive(literal, descriptor.name)
        if kind is DescriptorKind.LIST:
            return self._create_list(literal, descriptor)
        if kind is DescriptorKind.SET:
            return self._create_set(literal, descriptor)
        if kind is DescriptorKind.MAP:
            return self._create_map(literal, descriptor)
        if kind is DescriptorKind.PAIR:
            return self._create_pair(literal, descriptor)
        if literal is None:
            literal = make_entity_id(descriptor.name)
        return self.create_external(literal, descriptor.name)

    @abstractmethod
    def create_external(self, literal: str, type_name: str) -> Any:
        """Create a value of an external type from its identifier."""
        pass

    def _members(self, literal: str | None, opening: str, closing: str) -> list[str | None]:
        """Top-level element literals of a composite; a bare literal is one element."""
        if literal is None:
            return []
        if len(literal) >= 2 and literal[0] == opening and literal[-1] == closing:
            interior = literal[1:-1]
            if not is_balanced(interior):
                raise LiteralError(f"Badly-formed composite value: {literal}", literal)
            if not interior.strip():
                return []
            return list(safe_split(interior, ", "))
        if literal[0] == opening or literal[-1] == closing:
            raise LiteralError(f"Badly-formed composite value: {literal}", literal)
        return [None if literal == DEFAULT_ELEMENT else literal]

    def _create_list(self, literal: str | None, descriptor: TypeDescriptor) -> list[Any]:
        element = descriptor.value_type
        return [self.create_value(member, element) for member in self._members(literal, "[", "]")]

    def _create_set(self, literal: str | None, descriptor: TypeDescriptor) -> set[Any]:
        element = descriptor.value_type
        result: set[Any] = set()
        for member in self._members(literal, "[", "]"):
            value = self.create_value(member, element)
            try:
                result.add(value)
            except TypeError as e:
                raise LiteralError(f"Set element is not hashable: {member}", literal) from e
        return result

    def _create_map(self, literal: str | None, descriptor: TypeDescriptor) -> dict[Any, Any]:
        pair_type = descriptor.pair_type()
        result: dict[Any, Any] = {}
        for member in self._members(literal, "{", "}"):
            key, value = self._create_pair(member, pair_type)
            try:
                result[key] = value
            except TypeError as e:
                raise LiteralError(f"Map key is not hashable: {member}", literal) from e
        return result

    def _create_pair(self, literal: str | None, descriptor: TypeDescriptor) -> Pair:
        first_type, second_type = descriptor.key_type, descriptor.value_type
        if literal is None:
            return Pair(self.create_default(first_type), self.create_default(second_type))
        parts = safe_split(literal, "=")
        if len(parts) == 1:
            return Pair(self.create_value(parts[0], first_type), self.create_default(second_type))
        if len(parts) == 2:
            return Pair(
                self.create_value(parts[0], first_type),
                self.create_value(parts[1], second_type),
            )
        raise LiteralError(f"Badly-formed Pair value: {literal}", literal)

    # =========================================================================
    # JSON decoding
    # =========================================================================

    def decode_json(self, text: str | None, type_text: str) -> Any:
        """
        Rebuild a value from a JSON document.

        Generated REST drivers use this for outputs whose types involve an
        external type, e.g. ``factory.decode_json(body, "ArrayList<Vat>")``.
        """
        data = None if text is None else json.loads(text)
        return self.decode(data, self.descriptor(type_text))

    def decode(self, data: Any, descriptor: TypeDescriptor | str) -> Any:
        """
        Rebuild a value from decoded JSON data, dispatching on the descriptor kind.

        JSON null stays None. A Map is read from a JSON object whose keys are
        literals of the key type. A Pair is read from a two-element array or
        from an object with key/value or first/second members.

        Raises:
            LiteralError: if the data does not fit the descriptor
            ExternalTypeError: if an external type cannot be constructed
        """
        descriptor = self.descriptor(descriptor)
        if data is None:
            return None
        kind = descriptor.kind
        if kind is DescriptorKind.PRIMITIVE:
            return _decode_primitive(data, descriptor.name)
        if kind is DescriptorKind.LIST:
            element = descriptor.value_type
            return [self.decode(item, element) for item in _json_array(data, descriptor)]
        if kind is DescriptorKind.SET:
            element = descriptor.value_type
            result: set[Any] = set()
            for item in _json_array(data, descriptor):
                try:
                    result.add(self.decode(item, element))
                except TypeError as e:
                    raise LiteralError(f"Set element is not hashable: {item!r}", str(item)) from e
            return result
        if kind is DescriptorKind.MAP:
            if not isinstance(data, dict):
                raise LiteralError(f"Expected a JSON object for {descriptor}: {data!r}", str(data))
            key_type, value_type = descriptor.key_type, descriptor.value_type
            return {
                self.create_value(key, key_type): self.decode(item, value_type)
                for key, item in data.items()
            }
        if kind is DescriptorKind.PAIR:
            return self._decode_pair(data, descriptor)
        return self.decode_external(data, descriptor.name)

    def decode_external(self, data: Any, type_name: str) -> Any:
        """Rebuild an external value; by default only from its identifier."""
        if isinstance(data, (dict, list)):
            raise LiteralError(f"Cannot decode {type_name} from: {data!r}", str(data))
        return self.create_external(str(data), type_name)

    def _decode_pair(self, data: Any, descriptor: TypeDescriptor) -> Pair:
        first_type, second_type = descriptor.key_type, descriptor.value_type
        if isinstance(data, list) and len(data) == 2:
            first, second = data
        elif isinstance(data, dict) and data.keys() == {"key", "value"}:
            first, second = data["key"], data["value"]
        elif isinstance(data, dict) and data.keys() == {"first", "second"}:
            first, second = data["first"], data["second"]
        else:
            raise LiteralError(f"Cannot decode {descriptor} from: {data!r}", str(data))
        return Pair(self.decode(first, first_type), self.decode(second, second_type))

    # =========================================================================
    # Successor and predecessor
    # =========================================================================

    def successor(self, value: Any, descriptor: TypeDescriptor | str) -> Any:
        """Return the next value above the given one, for boundary probing."""
        return self._advance(value, self.descriptor(descriptor), forward=True)

    def predecessor(self, value: Any, descriptor: TypeDescriptor | str) -> Any:
        """Return the next value below the given one, for boundary probing."""
        return self._advance(value, self.descriptor(descriptor), forward=False)

    def _advance(self, value: Any, descriptor: TypeDescriptor, forward: bool) -> Any:
        kind = descriptor.kind
        if kind is DescriptorKind.PRIMITIVE:
            return _advance_primitive(value, descriptor.name, forward)
        if kind is DescriptorKind.LIST:
            return self._advance_list(value, descriptor, forward)
        if kind is DescriptorKind.SET:
            return self._advance_set(value, descriptor, forward)
        if kind is DescriptorKind.MAP:
            return self._advance_map(value, descriptor, forward)
        if kind is DescriptorKind.PAIR:
            return Pair(
                self._advance(value[0], descriptor.key_type, forward),
                self._advance(value[1], descriptor.value_type, forward),
            )
        return value

    def _advance_list(self, value: list[Any], descriptor: TypeDescriptor, forward: bool) -> list[Any]:
        result = list(value)
        if forward:
            element = descriptor.value_type
            if result:
                result.append(self._advance(result[-1], element, True))
            else:
                result.append(self.create_default(element))
        elif result:
            result.pop()
        return result

    def _advance_set(self, value: set[Any], descriptor: TypeDescriptor, forward: bool) -> set[Any]:
        result = set(value)
        if not forward:
            if result:
                result.discard(next(iter(value)))
            return result
        element = descriptor.value_type
        candidate = next(iter(value)) if value else self.create_default(element)
        seen: set[Any] = set()
        while candidate in result:
            if candidate in seen:
                return result
            seen.add(candidate)
            candidate = self._advance(candidate, element, True)
        result.add(candidate)
        return result

    def _advance_map(
        self, value: dict[Any, Any], descriptor: TypeDescriptor, forward: bool
    ) -> dict[Any, Any]:
        result = dict(value)
        if not forward:
            if result:
                del result[next(iter(value))]
            return result
        key_type, value_type = descriptor.key_type, descriptor.value_type
        key = next(iter(value)) if value else self.create_default(key_type)
        entry = value[key] if key in value else self.create_default(value_type)
        seen: set[Any] = set()
        while key in result:
            if key in seen:
                return result
            seen.add(key)
            key = self._advance(key, key_type, True)
            entry = self._advance(entry, value_type, True)
        result[key] = entry
        return result


def _advance_primitive(value: Any, name: str, forward: bool) -> Any:
    if name == "String":
        if forward:
            return value + STRING_SUCCESSOR_SUFFIX
        return value if value == "" else STRING_PREDECESSOR_PREFIX + value
    if name in INTEGRAL_TYPES:
        return value + 1 if forward else value - 1
    if name in FLOATING_TYPES:
        return value + FLOAT_STEP if forward else value - FLOAT_STEP
    if name == "Boolean":
        return not value
    if name == "Character":
        if forward:
            return chr(ord(value) + 1)
        return value if value == CHARACTER_FLOOR else chr(ord(value) - 1)
    return value


class ModelFactory(AbstractFactory):
    """Factory for the model layer: bracket grammar, external types as Entity values."""

    grammar = Grammar.BRACKET

    def create_external(self, literal: str, type_name: str) -> Entity:
        return Entity(literal)


class HostFactory(AbstractFactory):
    """
    Factory used by generated drivers: angle grammar, real external types.

    External types are constructed by calling a constructor with the
    identifier literal. Constructors come from the registry first, then
    from the source packages in the order they were added. The resolved
    constructor is cached per type name for the life of the factory.

    Example:
        factory = HostFactory()
        factory.use_source_package("client.local")
        vat = factory.create("vat1", "Vat")
    """

    grammar = Grammar.ANGLE

    def __init__(self, registry: Mapping[str, Callable[[str], Any]] | None = None):
        self._registry: dict[str, Callable[[str], Any]] = dict(registry or {})
        self._source_packages: list[str] = []
        self._resolved: dict[str, Callable[[str], Any]] = {}

    @property
    def source_packages(self) -> list[str]:
        return list(self._source_packages)

    def register(self, type_name: str, constructor: Callable[[str], Any]) -> None:
        """Add an explicit constructor for an external type."""
        self._registry[type_name] = constructor

    def use_source_package(self, package: str) -> None:
        """Add a module to search for external type constructors."""
        if package and package not in self._source_packages:
            self._source_packages.append(package)

    def create_external(self, literal: str, type_name: str) -> Any:
        constructor = self.resolve(type_name)
        try:
            return constructor(literal)
        except Exception as e:
            raise ExternalTypeError(
                f"Cannot construct {type_name} from identifier: {literal}",
                type_name,
                ResolutionFailure.CONSTRUCTOR_FAILED,
            ) from e

    def resolve(self, type_name: str) -> Callable[[str], Any]:
        """
        Find the constructor for an external type.

        Raises:
            ExternalTypeError: if no constructor is found, or the one found
                cannot take a single identifier argument
        """
        if type_name in self._resolved:
            return self._resolved[type_name]

        constructor = self._locate(type_name)
        try:
            inspect.signature(constructor).bind("identifier")
        except TypeError as e:
            raise ExternalTypeError(
                f"External type {type_name} has no single-identifier constructor",
                type_name,
                ResolutionFailure.NO_CONSTRUCTOR,
            ) from e
        except ValueError:
            # No introspectable signature (some builtins); assume it fits.
            pass

        logger.debug(f"Resolved external type {type_name} to {constructor!r}")
        self._resolved[type_name] = constructor
        return constructor

    def decode_external(self, data: Any, type_name: str) -> Any:
        """
        Rebuild an external value from decoded JSON.

        A JSON object is passed to the type's constructor as keyword
        arguments, so a class whose constructor parameters match its JSON
        members round-trips; a scalar is taken as the identifier.
        """
        if not isinstance(data, dict):
            return super().decode_external(data, type_name)
        constructor = self._resolved.get(type_name) or self._locate(type_name)
        try:
            return constructor(**data)
        except Exception as e:
            raise ExternalTypeError(
                f"Cannot construct {type_name} from JSON object: {data!r}",
                type_name,
                ResolutionFailure.CONSTRUCTOR_FAILED,
            ) from e

    def _locate(self, type_name: str) -> Callable[..., Any]:
        constructor = self._registry.get(type_name)
        if constructor is None:
            for package in self._source_packages:
                constructor = self._lookup(package, type_name)
                if constructor is not None:
                    break
        if constructor is None:
            raise ExternalTypeError(
                f"Cannot find the external type: {type_name}",
                type_name,
                ResolutionFailure.NOT_FOUND,
            )
        return constructor

    @staticmethod
    def _lookup(package: str, type_name: str) -> Callable[[str], Any] | None:
        try:
            module = importlib.import_module(package)
        except ImportError:
            logger.debug(f"Source package {package} is not importable")
            return None
        found = getattr(module, type_name, None)
        return found if callable(found) else None
