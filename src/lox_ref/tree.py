"""Shared helpers for working with the lark Tree/Token nodes of the syntax tree.

Every Tree built by the parser gets a process-unique integer ``meta.node_id``.
The resolver keys its distance table by that id, so the table stays valid for
exactly the node instances the evaluator later walks.
"""
from __future__ import annotations

import itertools
from typing import Any, Iterable, Iterator, List, Optional
from typing_extensions import TypeAlias, TypeGuard

from lark import Token, Tree

from .token_types import TT, Tok

Node: TypeAlias = Any  # Tree | Token | literal payload | None

_NODE_IDS = itertools.count(1)

INVALID_LABELS = frozenset({'invalid_expr', 'invalid_stmt'})


def mk(label: str, children: List[Any], line: int = 0) -> Tree:
    """Build a tree node and stamp it with a fresh id and source line."""
    tree = Tree(label, children)
    tree.meta.node_id = next(_NODE_IDS)
    tree.meta.line = line
    return tree


def lark_token(tok: Tok) -> Token:
    """Convert a scanner token into the lark Token stored in the tree."""
    return Token(tok.type.name, tok.lexeme, line=tok.line, column=tok.column)


def synthetic_token(kind: TT, lexeme: str, line: int) -> Token:
    return Token(kind.name, lexeme, line=line, column=0)


def is_tree(node: Node) -> TypeGuard[Tree]:
    return isinstance(node, Tree)

def is_token(node: Node) -> TypeGuard[Token]:
    return isinstance(node, Token)

def tree_label(node: Node) -> Optional[str]:
    return str(node.data) if is_tree(node) else None

def tree_children(node: Node) -> List[Node]:
    if not is_tree(node):
        return []

    return list(node.children)

def node_id(node: Tree) -> int:
    return node.meta.node_id

def node_line(node: Node) -> Optional[int]:
    if is_token(node):
        return node.line

    if is_tree(node):
        line = getattr(node.meta, 'line', None)
        if line:
            return line

        tok = node_token(node)
        if tok is not None:
            return tok.line

    return None

def node_token(node: Node) -> Optional[Token]:
    """First token reachable from *node*, depth first."""
    if is_token(node):
        return node

    for child in tree_children(node):
        found = node_token(child)
        if found is not None:
            return found

    return None

def iter_statements_trees(statements: Iterable[Tree]) -> Iterator[Tree]:
    for stmt in statements:
        if is_tree(stmt):
            yield from stmt.iter_subtrees_topdown()

def contains_invalid(statements: Iterable[Tree]) -> bool:
    return any(tree_label(t) in INVALID_LABELS for t in iter_statements_trees(statements))
