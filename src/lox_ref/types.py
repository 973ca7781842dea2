from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union
from typing_extensions import TypeAlias, TypeGuard

from lark import Token, Tree

# ---------- Value Model ----------

@dataclass
class LoxNil:
    def __repr__(self) -> str:
        return "nil"

@dataclass
class LoxNumber:
    value: float
    def __repr__(self) -> str:
        return format_number(self.value)

@dataclass
class LoxString:
    value: str
    def __repr__(self) -> str:
        return f'"{self.value}"'

@dataclass
class LoxBool:
    value: bool
    def __repr__(self) -> str:
        return "true" if self.value else "false"

@dataclass
class LoxList:
    items: List['LoxValue']
    def __repr__(self) -> str:
        return "[" + ", ".join(repr(x) for x in self.items) + "]"

@dataclass(eq=False)
class LoxFn:
    """A closure: declaration node plus the frame active when it was declared."""
    declaration: Tree             # 'function' or 'lambda_expr' node
    closure: 'Frame'
    is_initializer: bool = False
    is_getter: bool = False

    @property
    def name(self) -> Optional[str]:
        if self.declaration.data == 'lambda_expr':
            return None
        return str(self.declaration.children[0])

    @property
    def params(self) -> List[Token]:
        params_node = self.declaration.children[1]
        return [] if params_node is None else list(params_node.children)

    @property
    def body(self) -> List[Tree]:
        return list(self.declaration.children[2].children)

    def arity(self) -> int:
        return len(self.params)

    def bind(self, instance: 'LoxInstance') -> 'LoxFn':
        frame = Frame(parent=self.closure)
        frame.define("this", instance, assigned=True)
        return LoxFn(self.declaration, frame, self.is_initializer, self.is_getter)

    def __repr__(self) -> str:
        if self.name is None:
            return "<lambda>"
        return f"<fn {self.name}>"


class LoxInstance:
    def __init__(self, klass: Optional['LoxClass']):
        self.klass = klass
        self.fields: Dict[str, LoxValue] = {}

    def __repr__(self) -> str:
        name = self.klass.name if self.klass is not None else "?"
        return f"{name} instance"


class LoxClass(LoxInstance):
    """A class object. It is itself an instance of its metaclass, whose
    method table holds the static methods."""

    def __init__(
        self,
        name: str,
        superclass: Optional['LoxClass'],
        methods: Dict[str, LoxFn],
        metaclass: Optional['LoxClass'] = None,
    ):
        super().__init__(metaclass)
        self.name = name
        self.superclass = superclass
        self.methods = methods

    def find_method(self, name: str) -> Optional[LoxFn]:
        klass: Optional[LoxClass] = self
        while klass is not None:
            method = klass.methods.get(name)
            if method is not None:
                return method
            klass = klass.superclass
        return None

    def arity(self) -> int:
        init = self.find_method("init")
        return init.arity() if init is not None else 0

    def __repr__(self) -> str:
        return self.name


StdlibFn = Callable[['Frame', List['LoxValue']], 'LoxValue']

@dataclass(frozen=True)
class StdlibFunction:
    name: str
    fn: StdlibFn
    arity: int = 0

    def __repr__(self) -> str:
        return "<native fn>"

LoxValue: TypeAlias = (
    LoxNil
    | LoxNumber
    | LoxString
    | LoxBool
    | LoxList
    | LoxFn
    | LoxClass
    | LoxInstance
    | StdlibFunction
)

LoxCallable: TypeAlias = Union[LoxFn, LoxClass, StdlibFunction]

def format_number(v: float) -> str:
    if v.is_integer() and abs(v) < 1e16:
        return str(int(v))
    return repr(v)

# ---------- Statement outcomes ----------

@dataclass(frozen=True)
class Returned:
    """A `return` statement completed with this value."""
    value: LoxValue

class Broke:
    """A `break` statement completed; the nearest loop stops."""
    def __repr__(self) -> str:
        return "Broke"

BREAK = Broke()

# None means the statement completed normally.
Completion: TypeAlias = Optional[Union[Returned, Broke]]

# ---------- Environment ----------

class Frame:
    """One scope frame: name -> (value, is_initialized), plus its enclosing frame.

    Frames are shared by reference between every closure that captures them.
    """

    def __init__(self, parent: Optional['Frame']=None):
        self.parent = parent
        self.vars: Dict[str, Tuple[LoxValue, bool]] = {}

        if parent is None and Builtins.stdlib_functions:
            for name, std in Builtins.stdlib_functions.items():
                self.vars[name] = (std, True)

    def define(self, name: str, val: LoxValue, assigned: bool = True) -> None:
        self.vars[name] = (val, assigned)

    def get(self, name: Token) -> LoxValue:
        key = str(name)

        if key in self.vars:
            val, assigned = self.vars[key]
            if not assigned:
                raise LoxNameError(f"Unassigned variable '{key}'.", name)
            return val

        if self.parent is not None:
            return self.parent.get(name)

        raise LoxNameError(f"Undefined variable '{key}'.", name)

    def assign(self, name: Token, val: LoxValue) -> None:
        key = str(name)

        if key in self.vars:
            self.vars[key] = (val, True)
            return

        if self.parent is not None:
            self.parent.assign(name, val)
            return

        raise LoxNameError(f"Undefined variable '{key}'.", name)

    def ancestor(self, distance: int) -> 'Frame':
        frame = self
        for _ in range(distance):
            assert frame.parent is not None, "resolver distance exceeds frame depth"
            frame = frame.parent
        return frame

    def get_at(self, distance: int, name: Token) -> LoxValue:
        key = str(name)
        target = self.ancestor(distance)

        if key not in target.vars:
            raise LoxNameError(f"Undefined variable '{key}'.", name)

        val, assigned = target.vars[key]
        if not assigned:
            raise LoxNameError(f"Unassigned variable '{key}'.", name)
        return val

    def assign_at(self, distance: int, name: Token, val: LoxValue) -> None:
        self.ancestor(distance).vars[str(name)] = (val, True)

# ---------- Exceptions ----------

class LoxRuntimeError(Exception):
    """Runtime failure carrying the token that locates it."""

    def __init__(self, message: str, token: Optional[Token] = None):
        super().__init__(message)
        self.message = message
        self.token = token

    @property
    def line(self) -> Optional[int]:
        return getattr(self.token, "line", None)

    def report(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message}\n[line {self.line}]"

class LoxTypeError(LoxRuntimeError):
    pass

class LoxArityError(LoxRuntimeError):
    pass

class LoxNameError(LoxRuntimeError):
    pass

class LoxZeroDivisionError(LoxRuntimeError):
    pass

def is_callable(value: LoxValue) -> TypeGuard[LoxCallable]:
    return isinstance(value, (LoxFn, LoxClass, StdlibFunction))

class Builtins:
    stdlib_functions: Dict[str, StdlibFunction] = {}
