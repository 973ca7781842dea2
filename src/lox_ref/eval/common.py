from __future__ import annotations

from lark import Token
from typing_extensions import assert_never

from ..runtime import (
    LoxBool,
    LoxClass,
    LoxFn,
    LoxInstance,
    LoxList,
    LoxNil,
    LoxNumber,
    LoxString,
    LoxTypeError,
    LoxValue,
    StdlibFunction,
    format_number,
)

def require_number(op: Token, value: LoxValue) -> float:
    if isinstance(value, LoxNumber):
        return value.value

    raise LoxTypeError(f"Operand of '{op}' must be a number.", op)

def require_numbers(op: Token, lhs: LoxValue, rhs: LoxValue) -> tuple[float, float]:
    if isinstance(lhs, LoxNumber) and isinstance(rhs, LoxNumber):
        return lhs.value, rhs.value

    raise LoxTypeError(f"Operands of '{op}' must be numbers.", op)

def type_name(value: LoxValue) -> str:
    match value:
        case LoxNil():
            return "nil"
        case LoxNumber():
            return "number"
        case LoxString():
            return "string"
        case LoxBool():
            return "boolean"
        case LoxList():
            return "list"
        case LoxFn() | StdlibFunction():
            return "function"
        case LoxClass():
            return "class"
        case LoxInstance():
            return "instance"
        case _:
            assert_never(value)

def stringify(value: LoxValue) -> str:
    """Render a value the way `print` shows it."""
    match value:
        case LoxNil():
            return "nil"
        case LoxNumber(value=num):
            return format_number(num)
        case LoxString(value=s):
            return s
        case LoxBool(value=b):
            return "true" if b else "false"
        case LoxList(items=items):
            return "[" + ", ".join(stringify(item) for item in items) + "]"
        case LoxFn() | StdlibFunction() | LoxClass() | LoxInstance():
            return repr(value)
        case _:
            assert_never(value)
