"""Built-in global functions (clock and the list primitives) registered via register_stdlib."""

from __future__ import annotations

import time
from typing import List

from .runtime import register_stdlib, LoxNil, LoxString, LoxNumber, LoxBool, LoxList, LoxValue, LoxTypeError
from .eval.common import type_name

def _expect_list(name: str, value: LoxValue) -> LoxList:
    if isinstance(value, LoxList):
        return value

    raise LoxTypeError(f"{name} expects a list; got {type_name(value)}.")

def _expect_sequence(name: str, value: LoxValue) -> LoxList | LoxString:
    if isinstance(value, (LoxList, LoxString)):
        return value

    raise LoxTypeError(f"{name} expects a list or string; got {type_name(value)}.")

@register_stdlib("clock")
def std_clock(_frame, args: List[LoxValue]) -> LoxNumber:
    return LoxNumber(time.time())

@register_stdlib("cons", arity=2)
def std_cons(_frame, args: List[LoxValue]) -> LoxList:
    head, tail = args
    items = _expect_list("cons", tail).items

    return LoxList([head, *items])

@register_stdlib("empty", arity=1)
def std_empty(_frame, args: List[LoxValue]) -> LoxBool:
    seq = _expect_sequence("empty", args[0])

    match seq:
        case LoxList(items=items):
            return LoxBool(not items)
        case LoxString(value=s):
            return LoxBool(not s)

@register_stdlib("first", arity=1)
def std_first(_frame, args: List[LoxValue]) -> LoxValue:
    seq = _expect_sequence("first", args[0])

    match seq:
        case LoxList(items=items):
            return items[0] if items else LoxNil()
        case LoxString(value=s):
            return LoxString(s[0]) if s else LoxNil()

@register_stdlib("rest", arity=1)
def std_rest(_frame, args: List[LoxValue]) -> LoxValue:
    seq = _expect_sequence("rest", args[0])

    match seq:
        case LoxList(items=items):
            return LoxList(items[1:])
        case LoxString(value=s):
            return LoxString(s[1:])

@register_stdlib("length", arity=1)
def std_length(_frame, args: List[LoxValue]) -> LoxNumber:
    seq = _expect_sequence("length", args[0])

    match seq:
        case LoxList(items=items):
            return LoxNumber(float(len(items)))
        case LoxString(value=s):
            return LoxNumber(float(len(s)))
