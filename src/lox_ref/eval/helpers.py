from __future__ import annotations

from ..runtime import LoxBool, LoxList, LoxNil, LoxNumber, LoxString, LoxValue

def is_truthy(val: LoxValue) -> bool:
    """nil and false are falsey; every other value is truthy."""
    match val:
        case LoxBool(value=b):
            return b
        case LoxNil():
            return False
        case _:
            return True

def lox_equals(lhs: LoxValue, rhs: LoxValue) -> bool:
    match (lhs, rhs):
        case (LoxNil(), LoxNil()):
            return True
        case (LoxNumber(value=a), LoxNumber(value=b)):
            return a == b
        case (LoxString(value=a), LoxString(value=b)):
            return a == b
        case (LoxBool(value=a), LoxBool(value=b)):
            return a == b
        case (LoxList(items=a), LoxList(items=b)):
            return len(a) == len(b) and all(lox_equals(x, y) for x, y in zip(a, b))
        case _:
            return lhs is rhs
