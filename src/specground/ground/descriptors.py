"""
Type descriptors for abstract test suites.

A descriptor is the textual encoding of a (possibly generic) type. Two
surface grammars exist:

- the bracket grammar used by the model layer: ``List[Integer]``,
  ``Map[String, Integer]``, ``Pair[String, Boolean]``
- the angle grammar used when naming host types in generated drivers:
  ``ArrayList<Integer>``, ``HashMap<String, Integer>``,
  ``SimpleEntry<String, Boolean>``

Both parse to the same TypeDescriptor.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from specground.core.errors import DescriptorError

OPEN_BRACKETS = "<[{("
CLOSE_BRACKETS = ">]})"

PRIMITIVE_TYPES = (
    "String",
    "Integer",
    "Double",
    "Long",
    "Boolean",
    "Character",
    "Float",
    "Short",
    "Byte",
)

# Matched by substring, not by name: see is_literal_type().
LITERAL_TYPES = "String, Integer, Double, Boolean, Character, Short, Float, Long, Byte"

# Host type names for the primitive descriptors
PYTHON_TYPES = {
    "String": "str",
    "Integer": "int",
    "Long": "int",
    "Short": "int",
    "Byte": "int",
    "Double": "float",
    "Float": "float",
    "Boolean": "bool",
    "Character": "str",
}


class Grammar(str, Enum):
    """Surface syntax of a descriptor."""

    BRACKET = "bracket"
    ANGLE = "angle"

    @property
    def delimiters(self) -> tuple[str, str]:
        if self is Grammar.BRACKET:
            return "[", "]"
        return "<", ">"


class DescriptorKind(str, Enum):
    """Variants of a type descriptor."""

    PRIMITIVE = "primitive"
    LIST = "list"
    SET = "set"
    MAP = "map"
    PAIR = "pair"
    EXTERNAL = "external"


GENERIC_NAMES: dict[Grammar, dict[DescriptorKind, str]] = {
    Grammar.BRACKET: {
        DescriptorKind.LIST: "List",
        DescriptorKind.SET: "Set",
        DescriptorKind.MAP: "Map",
        DescriptorKind.PAIR: "Pair",
    },
    Grammar.ANGLE: {
        DescriptorKind.LIST: "ArrayList",
        DescriptorKind.SET: "HashSet",
        DescriptorKind.MAP: "HashMap",
        DescriptorKind.PAIR: "SimpleEntry",
    },
}

GENERIC_ARITY = {
    DescriptorKind.LIST: 1,
    DescriptorKind.SET: 1,
    DescriptorKind.MAP: 2,
    DescriptorKind.PAIR: 2,
}


class TypeDescriptor(BaseModel):
    """
    A parsed type descriptor.

    Examples:
        - Integer: TypeDescriptor(kind=PRIMITIVE, name="Integer")
        - List[Integer]: TypeDescriptor(kind=LIST, name="List", params=(Integer,))
        - Map[String, Boolean]: TypeDescriptor(kind=MAP, name="Map", params=(String, Boolean))
        - Vat: TypeDescriptor(kind=EXTERNAL, name="Vat")

    Generic descriptors are named by their bracket-grammar base name,
    whichever grammar they were parsed from.
    """

    kind: DescriptorKind
    name: str
    params: tuple[TypeDescriptor, ...] = ()

    model_config = ConfigDict(frozen=True)

    @classmethod
    def primitive(cls, name: str) -> TypeDescriptor:
        return cls(kind=DescriptorKind.PRIMITIVE, name=name)

    @classmethod
    def external(cls, name: str) -> TypeDescriptor:
        return cls(kind=DescriptorKind.EXTERNAL, name=name)

    @classmethod
    def generic(cls, kind: DescriptorKind, *params: TypeDescriptor) -> TypeDescriptor:
        if len(params) != GENERIC_ARITY[kind]:
            name = GENERIC_NAMES[Grammar.BRACKET][kind]
            raise DescriptorError(
                f"Badly-formed {name} type: expects {GENERIC_ARITY[kind]} parameter(s)",
                name,
            )
        return cls(kind=kind, name=GENERIC_NAMES[Grammar.BRACKET][kind], params=params)

    @property
    def is_generic(self) -> bool:
        return self.kind in GENERIC_ARITY

    @property
    def has_external(self) -> bool:
        """True if this descriptor is, or has a parameter of, an external type."""
        if self.kind is DescriptorKind.EXTERNAL:
            return True
        return any(param.has_external for param in self.params)

    @property
    def key_type(self) -> TypeDescriptor:
        """Key type: the index type for a List or Set, else the first parameter."""
        if self.kind in (DescriptorKind.LIST, DescriptorKind.SET):
            return TypeDescriptor.primitive("Integer")
        if self.kind in (DescriptorKind.MAP, DescriptorKind.PAIR):
            return self.params[0]
        raise DescriptorError(f"Cannot extract key type of: {self.render()}", self.render())

    @property
    def value_type(self) -> TypeDescriptor:
        """Value type: the element type for a List or Set, else the last parameter."""
        if not self.is_generic:
            raise DescriptorError(f"Cannot extract value type of: {self.render()}", self.render())
        return self.params[-1]

    def pair_type(self) -> TypeDescriptor:
        """The Pair type enumerated by this collection, e.g. Pair[Integer, E] for List[E]."""
        if not self.is_generic:
            raise DescriptorError(f"Cannot extract pair type of: {self.render()}", self.render())
        return TypeDescriptor.generic(DescriptorKind.PAIR, self.key_type, self.value_type)

    def render(self, grammar: Grammar = Grammar.BRACKET) -> str:
        """Encode this descriptor in the given surface grammar."""
        if not self.is_generic:
            return self.name
        opening, closing = grammar.delimiters
        params = ", ".join(param.render(grammar) for param in self.params)
        return f"{GENERIC_NAMES[grammar][self.kind]}{opening}{params}{closing}"

    def python_annotation(self) -> str:
        """Name of the matching host type, as written in a generated driver."""
        if self.kind is DescriptorKind.PRIMITIVE:
            return PYTHON_TYPES[self.name]
        if self.kind is DescriptorKind.EXTERNAL:
            return self.name
        if self.kind is DescriptorKind.PAIR:
            return "Pair"
        params = ", ".join(param.python_annotation() for param in self.params)
        container = {
            DescriptorKind.LIST: "List",
            DescriptorKind.SET: "Set",
            DescriptorKind.MAP: "Dict",
        }[self.kind]
        return f"{container}[{params}]"

    def __str__(self) -> str:
        return self.render()


TypeDescriptor.model_rebuild()


def safe_index_of(text: str, separator: str, start: int = 0) -> int:
    """
    Find the first top-level occurrence of a separator character.

    Works like str.find(), except that occurrences nested inside any kind
    of bracket (angle, square, brace, round) are skipped.

    Returns:
        Index of the separator, or -1 if there is none at the top level
    """
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == separator and depth == 0:
            return index
        if char in OPEN_BRACKETS:
            depth += 1
        elif char in CLOSE_BRACKETS:
            depth -= 1
    return -1


def safe_split(text: str, separator: str) -> list[str]:
    """
    Split a string on a separator at the top level only.

    Works like str.split(), except that separators nested inside any kind
    of bracket are not split on. The string itself must be supplied
    without its surrounding brackets.

    Example:
        safe_split("[a,b], [c,d]", ", ") == ["[a,b]", "[c,d]"]
    """
    parts: list[str] = []
    depth = 0
    start = 0
    index = 0
    while index < len(text):
        char = text[index]
        if char in OPEN_BRACKETS:
            depth += 1
        elif char in CLOSE_BRACKETS:
            depth -= 1
        elif depth == 0 and text.startswith(separator, index):
            parts.append(text[start:index])
            index += len(separator)
            start = index
            continue
        index += 1
    parts.append(text[start:])
    return parts


def is_balanced(text: str) -> bool:
    """Check that every bracket in text is closed by a bracket of the same kind."""
    stack: list[str] = []
    for char in text:
        if char in OPEN_BRACKETS:
            stack.append(CLOSE_BRACKETS[OPEN_BRACKETS.index(char)])
        elif char in CLOSE_BRACKETS:
            if not stack or stack.pop() != char:
                return False
    return not stack


def is_primitive(type_text: str) -> bool:
    """Exact test for one of the nine primitive type names."""
    return type_text in PRIMITIVE_TYPES


def is_literal_type(type_text: str) -> bool:
    """
    Test whether values of a type are written as plain literals.

    This is a substring test against LITERAL_TYPES, so a fragment such as
    "Int" or "Char" also matches. Drivers have always been generated with
    this rule; see test_literal_type_substring_match for the known cases.
    """
    return type_text in LITERAL_TYPES


def is_generic(type_text: str) -> bool:
    """Test whether a descriptor uses generic delimiters of either grammar."""
    return any(
        opening in type_text and closing in type_text
        for opening, closing in (grammar.delimiters for grammar in Grammar)
    )


def parse_descriptor(text: str, grammar: Grammar = Grammar.BRACKET) -> TypeDescriptor:
    """
    Parse a type descriptor in the given grammar.

    Args:
        text: Descriptor text, e.g. "Map[String, List[Integer]]"
        grammar: Surface grammar the text is written in

    Returns:
        The parsed TypeDescriptor

    Raises:
        DescriptorError: if delimiters are missing or unmatched, the
            generic base type is unknown, or the parameter arity is wrong
    """
    if text is None or not text.strip():
        raise DescriptorError("Empty type descriptor", text or "")
    text = text.strip()
    opening, closing = grammar.delimiters
    left = text.find(opening)
    right = text.rfind(closing)

    if left == -1 and right == -1:
        if any(char in OPEN_BRACKETS or char in CLOSE_BRACKETS for char in text):
            raise DescriptorError(f"Badly-formed type: {text}", text)
        if is_primitive(text):
            return TypeDescriptor.primitive(text)
        return TypeDescriptor.external(text)

    if left == -1 or right == -1 or right != len(text) - 1 or right < left:
        raise DescriptorError(f"Badly-formed generic type: {text}", text)
    interior = text[left + 1 : right]
    if not is_balanced(interior):
        raise DescriptorError(f"Badly-formed generic type: {text}", text)

    base = text[:left].strip()
    kind = next(
        (kind for kind, name in GENERIC_NAMES[grammar].items() if name == base),
        None,
    )
    if kind is None:
        raise DescriptorError(f"Unrecognised generic type: {text}", text)

    parts = [part.strip() for part in safe_split(interior, ",")]
    if len(parts) != GENERIC_ARITY[kind]:
        raise DescriptorError(
            f"Badly-formed {base} type: {text} (expects {GENERIC_ARITY[kind]} parameter(s))",
            text,
        )
    params = tuple(parse_descriptor(part, grammar) for part in parts)
    return TypeDescriptor(kind=kind, name=GENERIC_NAMES[Grammar.BRACKET][kind], params=params)
