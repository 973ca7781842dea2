"""Static scope resolution.

Walks the parsed program once, before execution, and records for every local
variable/assign/this/super reference how many frames out its binding lives.
The table is keyed by ``meta.node_id`` so it only ever applies to the exact
tree instances that were resolved. Names that resolve to no scope are globals
and get no entry.

All diagnostics are collected; the walk never stops at the first error.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List, Optional

from lark import Token, Tree
from lark.visitors import Interpreter

from .diagnostics import Diagnostics
from .tree import node_id

class FunctionType(Enum):
    NONE = auto()
    FUNCTION = auto()
    LAMBDA = auto()
    METHOD = auto()
    INITIALIZER = auto()

class ClassType(Enum):
    NONE = auto()
    CLASS = auto()
    SUBCLASS = auto()

@dataclass
class _Binding:
    token: Optional[Token]
    defined: bool = False
    used: bool = False
    tracked: bool = True  # parameters and this/super never warn

class Resolver(Interpreter):
    """Visitor over the lark tree; one method per node label."""

    def __init__(self, diagnostics: Optional[Diagnostics] = None):
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.scopes: List[Dict[str, _Binding]] = []
        self.locals: Dict[int, int] = {}
        self.current_function = FunctionType.NONE
        self.current_class = ClassType.NONE
        self.unused: List[_Binding] = []

    # ---------------- Entry points ----------------

    def resolve(self, statements: List[Tree]) -> Dict[int, int]:
        for stmt in statements:
            self.visit(stmt)

        self.report_unused()
        return self.locals

    def resolve_expression(self, expr: Tree) -> Dict[int, int]:
        self.visit(expr)
        return self.locals

    def report_unused(self) -> None:
        for binding in sorted(self.unused, key=lambda b: (b.token.line, b.token.column)):
            self.diagnostics.warn_at(binding.token, f"Local variable '{binding.token}' is never used.")
        self.unused.clear()

    # ---------------- Scopes ----------------

    def begin_scope(self) -> None:
        self.scopes.append({})

    def end_scope(self) -> None:
        scope = self.scopes.pop()
        self.unused.extend(b for b in scope.values() if b.tracked and not b.used)

    def declare(self, name: Token, tracked: bool = True) -> None:
        if not self.scopes:
            return

        scope = self.scopes[-1]
        if str(name) in scope:
            self.diagnostics.error_at(name, "Already a variable with this name in this scope.")

        scope[str(name)] = _Binding(name, tracked=tracked)

    def define(self, name: Token) -> None:
        if not self.scopes:
            return

        self.scopes[-1][str(name)].defined = True

    def define_implicit(self, name: str) -> None:
        self.scopes[-1][name] = _Binding(None, defined=True, tracked=False)

    def resolve_local(self, n: Tree, name: str, read: bool = True) -> None:
        for depth, scope in enumerate(reversed(self.scopes)):
            binding = scope.get(name)
            if binding is not None:
                if read:
                    binding.used = True
                self.locals[node_id(n)] = depth
                return

    def resolve_function(self, n: Tree, kind: FunctionType) -> None:
        """Parameters and body share one scope, matching the call frame."""
        _name, params, body = n.children
        enclosing = self.current_function
        self.current_function = kind

        self.begin_scope()
        for param in (params.children if params is not None else []):
            self.declare(param, tracked=False)
            self.define(param)
        for stmt in body.children:
            self.visit(stmt)
        self.end_scope()

        self.current_function = enclosing

    # ---------------- Statements ----------------

    def block(self, n: Tree) -> None:
        self.begin_scope()
        self.visit_children(n)
        self.end_scope()

    def var_decl(self, n: Tree) -> None:
        name, init = n.children
        self.declare(name)

        if init is not None:
            self.visit(init)

        self.define(name)

    def function(self, n: Tree) -> None:
        name = n.children[0]
        self.declare(name)
        self.define(name)

        self.resolve_function(n, FunctionType.FUNCTION)

    def return_stmt(self, n: Tree) -> None:
        keyword, value = n.children

        if self.current_function == FunctionType.NONE:
            self.diagnostics.error_at(keyword, "Can't return from top-level code.")

        if value is not None:
            if self.current_function == FunctionType.INITIALIZER:
                self.diagnostics.error_at(keyword, "Can't return a value from an initializer.")
            self.visit(value)

    def class_decl(self, n: Tree) -> None:
        """
        Scope nesting inside a class body:
        [super]  only with a superclass
          this
            parameters and body of each method
        Static methods get the same nesting; their `this` is the class.
        """
        name, superclass, methods, statics = n.children
        enclosing = self.current_class
        self.current_class = ClassType.CLASS

        self.declare(name)
        self.define(name)

        if superclass is not None:
            super_name = superclass.children[0]
            if str(super_name) == str(name):
                self.diagnostics.error_at(super_name, "A class can't inherit from itself.")

            self.current_class = ClassType.SUBCLASS
            self.visit(superclass)

            self.begin_scope()
            self.define_implicit("super")

        self.begin_scope()
        self.define_implicit("this")

        for method in methods.children:
            is_init = str(method.children[0]) == "init" and method.children[1] is not None
            self.resolve_function(method, FunctionType.INITIALIZER if is_init else FunctionType.METHOD)

        for method in statics.children:
            self.resolve_function(method, FunctionType.METHOD)

        self.end_scope()

        if superclass is not None:
            self.end_scope()

        self.current_class = enclosing

    def invalid_stmt(self, n: Tree) -> None:
        return None

    # ---------------- Expressions ----------------

    def variable(self, n: Tree) -> None:
        name = n.children[0]

        if self.scopes:
            binding = self.scopes[-1].get(str(name))
            if binding is not None and not binding.defined:
                self.diagnostics.error_at(name, "Can't read local variable in its own initializer.")

        self.resolve_local(n, str(name))

    def assign(self, n: Tree) -> None:
        name, value = n.children
        self.visit(value)
        self.resolve_local(n, str(name), read=False)

    def lambda_expr(self, n: Tree) -> None:
        self.resolve_function(n, FunctionType.LAMBDA)

    def this_expr(self, n: Tree) -> None:
        keyword = n.children[0]

        if self.current_class == ClassType.NONE:
            self.diagnostics.error_at(keyword, "Can't use 'this' outside of a class.")
            return

        self.resolve_local(n, "this")

    def super_expr(self, n: Tree) -> None:
        keyword = n.children[0]

        match self.current_class:
            case ClassType.NONE:
                self.diagnostics.error_at(keyword, "Can't use 'super' outside of a class.")
            case ClassType.CLASS:
                self.diagnostics.error_at(keyword, "Can't use 'super' in a class with no superclass.")
            case ClassType.SUBCLASS:
                self.resolve_local(n, "super")

    def invalid_expr(self, n: Tree) -> None:
        return None
