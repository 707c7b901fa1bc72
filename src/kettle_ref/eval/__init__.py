"""Compile helpers for the Kettle evaluator, one module per node family."""

__all__ = [
    "bind",
    "blocks",
    "common",
    "control",
    "expr",
    "fn",
    "helpers",
    "literals",
]
