from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, List, Optional

from lark import Token

from .types import (
    LoxNil, LoxNumber, LoxString, LoxBool, LoxList,
    LoxFn, LoxClass, LoxInstance, StdlibFunction, StdlibFn,
    LoxValue, LoxCallable, Frame, Returned, Broke, Completion, BREAK,
    LoxRuntimeError, LoxTypeError, LoxArityError, LoxNameError, LoxZeroDivisionError,
    Builtins, is_callable, format_number,
)

if TYPE_CHECKING:
    from .evaluator import Interpreter

_STDLIB_INITIALIZED = False

def init_stdlib() -> None:
    """Load stdlib modules (idempotent) so register_stdlib hooks run."""
    global _STDLIB_INITIALIZED

    if _STDLIB_INITIALIZED:
        return

    importlib.import_module("lox_ref.stdlib")
    _STDLIB_INITIALIZED = True

def register_stdlib(name: str, *, arity: int = 0):
    def dec(fn: StdlibFn):
        Builtins.stdlib_functions[name] = StdlibFunction(name=name, fn=fn, arity=arity)
        return fn

    return dec

def callable_arity(callee: LoxCallable) -> int:
    match callee:
        case LoxFn() | LoxClass():
            return callee.arity()
        case StdlibFunction(arity=arity):
            return arity

def call_value(callee: LoxValue, args: List[LoxValue], interp: 'Interpreter', paren: Optional[Token]=None) -> LoxValue:
    """Invoke any callable value after checking its arity."""
    if not is_callable(callee):
        raise LoxTypeError("Can only call functions and classes.", paren)

    expected = callable_arity(callee)
    if len(args) != expected:
        raise LoxArityError(f"Expected {expected} arguments but got {len(args)}.", paren)

    match callee:
        case LoxClass():
            return instantiate(callee, args, interp)
        case LoxFn():
            return call_fn(callee, args, interp)
        case StdlibFunction(fn=fn):
            return fn(interp.globals, args)

def call_fn(fn: LoxFn, args: List[LoxValue], interp: 'Interpreter') -> LoxValue:
    """
    Closure call semantics:
    - a fresh frame is parented at the closure's captured frame, not the caller's
    - parameters bind positionally
    - a Returned outcome becomes the result; falling off the end yields nil
    - initializers always yield the bound instance
    """
    callee_frame = Frame(parent=fn.closure)

    for param, val in zip(fn.params, args):
        callee_frame.define(str(param), val)

    outcome = interp.exec_block(fn.body, callee_frame)

    if fn.is_initializer:
        return fn.closure.vars["this"][0]

    match outcome:
        case Returned(value=value):
            return value
        case None:
            return LoxNil()
        case Broke():
            raise RuntimeError("'break' escaped a function body")

def call_getter(getter: LoxFn, interp: 'Interpreter') -> LoxValue:
    """Getters skip argument binding entirely and run with zero arguments."""
    return call_fn(getter, [], interp)

def instantiate(klass: LoxClass, args: List[LoxValue], interp: 'Interpreter') -> LoxInstance:
    instance = LoxInstance(klass)
    init = klass.find_method("init")

    if init is not None:
        call_fn(init.bind(instance), args, interp)

    return instance

def get_property(obj: LoxValue, name: Token, interp: 'Interpreter') -> LoxValue:
    """Fields first, then the class method chain. Classes resolve through
    their metaclass, which is how static methods are found."""
    if not isinstance(obj, LoxInstance):
        raise LoxTypeError("Only instances have properties.", name)

    key = str(name)
    if key in obj.fields:
        return obj.fields[key]

    method = obj.klass.find_method(key) if obj.klass is not None else None
    if method is None:
        raise LoxNameError(f"Undefined property '{key}'.", name)

    bound = method.bind(obj)
    if bound.is_getter:
        return call_getter(bound, interp)

    return bound

def set_property(obj: LoxValue, name: Token, value: LoxValue) -> LoxValue:
    if not isinstance(obj, LoxInstance):
        raise LoxTypeError("Only instances have fields.", name)

    obj.fields[str(name)] = value
    return value
