"""Evaluator helper modules for the Lox runtime."""

__all__ = [
    "bind",
    "blocks",
    "common",
    "expr",
    "fn",
    "helpers",
    "loops",
    "objects",
]
