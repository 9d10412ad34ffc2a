"""
Move ABI model and argument preparation.

Module ABIs come from the node as JSON; parameter types are plain strings such
as `&signer`, `vector<u8>` or `0x1::object::Object<T0>`. Those strings are
parsed once into a small closed type grammar which drives placeholder hints.
User-entered argument strings are aligned with the parameters (the implicit
signer removed) and coerced into JSON call arguments.
"""

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

SIGNER_TYPES = frozenset({"signer", "&signer"})
UINT_WIDTHS = {"u8": 8, "u16": 16, "u32": 32, "u64": 64, "u128": 128, "u256": 256}

_TOKEN_RE = re.compile(r"\s*(::|<|>|,|&|[A-Za-z0-9_]+)")
_GENERIC_RE = re.compile(r"T[0-9]*")


@dataclass(frozen=True)
class AddressType:
    pass


@dataclass(frozen=True)
class UIntType:
    width: int


@dataclass(frozen=True)
class BoolType:
    pass


@dataclass(frozen=True)
class SignerType:
    pass


@dataclass(frozen=True)
class StringType:
    pass


@dataclass(frozen=True)
class VectorType:
    element: "MoveType"


@dataclass(frozen=True)
class GenericType:
    name: str


@dataclass(frozen=True)
class ReferenceType:
    inner: "MoveType"
    mutable: bool = False


@dataclass(frozen=True)
class StructType:
    address: str
    module: str
    name: str
    type_args: Tuple["MoveType", ...] = ()

    def is_framework(self, module: str, name: str) -> bool:
        return _is_framework_address(self.address) and self.module == module and self.name == name


MoveType = Union[
    AddressType,
    UIntType,
    BoolType,
    SignerType,
    StringType,
    VectorType,
    GenericType,
    ReferenceType,
    StructType,
]


class TypeParseError(ValueError):
    pass


def _is_framework_address(address: str) -> bool:
    try:
        return int(address, 16) == 1
    except ValueError:
        return False


class _TypeParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = self._tokenize(text)
        self.pos = 0

    def _tokenize(self, text: str) -> List[str]:
        tokens: List[str] = []
        idx = 0
        stripped = text.rstrip()
        while idx < len(stripped):
            match = _TOKEN_RE.match(stripped, idx)
            if not match:
                raise TypeParseError(f"Unexpected character in type '{text}' at offset {idx}.")
            tokens.append(match.group(1))
            idx = match.end()
        if not tokens:
            raise TypeParseError("Type string is empty.")
        return tokens

    def _peek(self) -> Optional[str]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            raise TypeParseError(f"Unexpected end of type '{self.text}'.")
        self.pos += 1
        return token

    def _expect(self, expected: str) -> None:
        token = self._next()
        if token != expected:
            raise TypeParseError(f"Expected '{expected}' in type '{self.text}', got '{token}'.")

    def parse(self) -> MoveType:
        result = self._parse_type()
        if self._peek() is not None:
            raise TypeParseError(f"Trailing tokens in type '{self.text}'.")
        return result

    def _parse_type(self) -> MoveType:
        token = self._next()
        if token == "&":
            mutable = False
            if self._peek() == "mut":
                self.pos += 1
                mutable = True
            inner = self._parse_type()
            if isinstance(inner, SignerType):
                return inner
            return ReferenceType(inner, mutable)

        if token == "bool":
            return BoolType()
        if token == "address":
            return AddressType()
        if token == "signer":
            return SignerType()
        if token in UINT_WIDTHS:
            return UIntType(UINT_WIDTHS[token])
        if token == "vector":
            self._expect("<")
            element = self._parse_type()
            self._expect(">")
            return VectorType(element)

        if self._peek() == "::":
            return self._parse_struct(token)

        if _GENERIC_RE.fullmatch(token) or token.isidentifier():
            return GenericType(token)
        raise TypeParseError(f"Unexpected token '{token}' in type '{self.text}'.")

    def _parse_struct(self, address: str) -> MoveType:
        self._expect("::")
        module = self._next()
        self._expect("::")
        name = self._next()
        type_args: List[MoveType] = []
        if self._peek() == "<":
            self.pos += 1
            type_args.append(self._parse_type())
            while self._peek() == ",":
                self.pos += 1
                type_args.append(self._parse_type())
            self._expect(">")

        struct = StructType(address, module, name, tuple(type_args))
        if struct.is_framework("string", "String"):
            return StringType()
        return struct


@lru_cache(maxsize=1024)
def parse_type(type_str: str) -> MoveType:
    """Parse a Move type string from an ABI into the type grammar."""
    if not isinstance(type_str, str):
        raise TypeParseError("Type must be a string.")
    return _TypeParser(type_str).parse()


@dataclass(frozen=True)
class GenericTypeParam:
    constraints: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenericTypeParam":
        return cls(constraints=tuple(data.get("constraints") or ()))


@dataclass(frozen=True)
class ExposedFunction:
    name: str
    visibility: str = "public"
    is_entry: bool = False
    is_view: bool = False
    generic_type_params: Tuple[GenericTypeParam, ...] = ()
    params: Tuple[str, ...] = ()
    returns: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExposedFunction":
        if not isinstance(data, dict) or not data.get("name"):
            raise ValueError("Exposed function must be an object with a name.")
        return cls(
            name=str(data["name"]),
            visibility=str(data.get("visibility") or "public"),
            is_entry=bool(data.get("is_entry")),
            is_view=bool(data.get("is_view")),
            generic_type_params=tuple(
                GenericTypeParam.from_dict(p) for p in data.get("generic_type_params") or () if isinstance(p, dict)
            ),
            params=tuple(str(p) for p in data.get("params") or ()),
            returns=tuple(str(r) for r in data.get("return") or ()),
        )

    @property
    def user_params(self) -> List[str]:
        return filter_signer_params(self.params)

    @property
    def is_runnable(self) -> bool:
        return self.is_view or self.is_entry

    def to_dict(self) -> Dict[str, Any]:
        user_params = self.user_params
        return {
            "name": self.name,
            "visibility": self.visibility,
            "is_entry": self.is_entry,
            "is_view": self.is_view,
            "generic_type_params": [list(p.constraints) for p in self.generic_type_params],
            "params": list(self.params),
            "user_params": user_params,
            "placeholders": [suggest_placeholder(p) for p in user_params],
            "return": list(self.returns),
        }


@dataclass(frozen=True)
class StructField:
    name: str
    type: str


@dataclass(frozen=True)
class StructDescriptor:
    name: str
    is_native: bool = False
    abilities: Tuple[str, ...] = ()
    generic_type_params: Tuple[GenericTypeParam, ...] = ()
    fields: Tuple[StructField, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructDescriptor":
        return cls(
            name=str(data.get("name", "")),
            is_native=bool(data.get("is_native")),
            abilities=tuple(data.get("abilities") or ()),
            generic_type_params=tuple(
                GenericTypeParam.from_dict(p) for p in data.get("generic_type_params") or () if isinstance(p, dict)
            ),
            fields=tuple(
                StructField(name=str(f.get("name", "")), type=str(f.get("type", "")))
                for f in data.get("fields") or ()
                if isinstance(f, dict)
            ),
        )


@dataclass(frozen=True)
class ModuleDescriptor:
    address: str
    name: str
    friends: Tuple[str, ...] = ()
    exposed_functions: Tuple[ExposedFunction, ...] = ()
    structs: Tuple[StructDescriptor, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleDescriptor":
        if not isinstance(data, dict):
            raise ValueError("Module ABI must be an object.")
        return cls(
            address=str(data.get("address", "")),
            name=str(data.get("name", "")),
            friends=tuple(str(f) for f in data.get("friends") or ()),
            exposed_functions=tuple(
                ExposedFunction.from_dict(f) for f in data.get("exposed_functions") or () if isinstance(f, dict)
            ),
            structs=tuple(StructDescriptor.from_dict(s) for s in data.get("structs") or () if isinstance(s, dict)),
        )

    def find_function(self, name: str) -> Optional[ExposedFunction]:
        for func in self.exposed_functions:
            if func.name == name:
                return func
        return None

    @property
    def runnable_functions(self) -> List[ExposedFunction]:
        return [f for f in self.exposed_functions if f.is_runnable]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "friends": list(self.friends),
            "view_functions": [f.name for f in self.exposed_functions if f.is_view],
            "entry_functions": [f.name for f in self.exposed_functions if f.is_entry],
            "exposed_functions": [f.to_dict() for f in self.exposed_functions],
            "structs": [
                {
                    "name": s.name,
                    "abilities": list(s.abilities),
                    "fields": [{"name": f.name, "type": f.type} for f in s.fields],
                }
                for s in self.structs
            ],
        }


def filter_signer_params(params: Sequence[str]) -> List[str]:
    """Drop the implicit signer parameters the wallet supplies."""
    return [p for p in params if p not in SIGNER_TYPES]


def coerce_argument(raw: Any, type_hint: Optional[str] = None) -> Any:
    """
    Best-effort conversion of a user-entered argument string.

    `[`/`{` literals are parsed as JSON (falling back to the raw text when they
    do not parse), `true`/`false` become booleans, and everything else,
    digit strings included, is passed through unchanged. Digit strings stay
    strings so u64/u128/u256 values keep their precision.
    """
    if not isinstance(raw, str):
        return raw
    if raw.startswith("[") or raw.startswith("{"):
        try:
            return json.loads(raw)
        except ValueError:
            logger.debug("Argument for %s is not valid JSON; passing it through as text.", type_hint or "param")
            return raw
    if raw == "true":
        return True
    if raw == "false":
        return False
    return raw


def suggest_placeholder(type_hint: str) -> str:
    try:
        parsed = parse_type(type_hint)
    except TypeParseError:
        return _substring_placeholder(type_hint or "")
    return _placeholder_for(parsed)


def _placeholder_for(move_type: MoveType) -> str:
    if isinstance(move_type, ReferenceType):
        return _placeholder_for(move_type.inner)
    if isinstance(move_type, AddressType):
        return "0x..."
    if isinstance(move_type, UIntType):
        return "0"
    if isinstance(move_type, BoolType):
        return "true or false"
    if isinstance(move_type, VectorType):
        return "[value1, value2]"
    if isinstance(move_type, StringType):
        return "text"
    if isinstance(move_type, StructType) and move_type.is_framework("object", "Object"):
        # objects are passed by address
        return "0x..."
    return "value"


def _substring_placeholder(type_hint: str) -> str:
    if "address" in type_hint:
        return "0x..."
    if "u64" in type_hint or "u128" in type_hint:
        return "0"
    if "bool" in type_hint:
        return "true or false"
    if "vector" in type_hint:
        return "[value1, value2]"
    if "string" in type_hint or "String" in type_hint:
        return "text"
    return "value"


def function_id(address: str, module_name: str, function_name: str) -> str:
    return f"{address}::{module_name}::{function_name}"


@dataclass
class PreparedCall:
    function: str
    type_arguments: List[str]
    arguments: List[str]
    param_types: List[str]
    is_view: bool
    is_entry: bool

    def view_request(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "type_arguments": list(self.type_arguments),
            "arguments": [a for a in self.arguments if a],
        }

    def entry_payload(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "typeArguments": list(self.type_arguments),
            "functionArguments": [
                coerce_argument(raw, hint) for raw, hint in zip(self.arguments, self.param_types)
            ],
        }


def _align(values: Optional[Sequence[str]], slots: int) -> List[str]:
    aligned = ["" if v is None else str(v) for v in list(values or [])[:slots]]
    aligned.extend([""] * (slots - len(aligned)))
    return aligned


def prepare_call(
    address: str,
    module_name: str,
    func: ExposedFunction,
    type_args: Optional[Sequence[str]] = None,
    args: Optional[Sequence[str]] = None,
) -> PreparedCall:
    """Align raw type-argument and argument strings with the function's ABI."""
    param_types = func.user_params
    type_slots = _align(type_args, len(func.generic_type_params))
    return PreparedCall(
        function=function_id(address, module_name, func.name),
        type_arguments=[t for t in type_slots if t],
        arguments=_align(args, len(param_types)),
        param_types=param_types,
        is_view=func.is_view,
        is_entry=func.is_entry,
    )
