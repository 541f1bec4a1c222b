"""
Static checks on submitted Python, run before the sandbox loads it.

Submitted code gets restricted builtins and public views of a few modules.
These checks refuse the attribute paths that lead back out of them:
function globals, frames and the class hierarchy.
"""

import ast
from dataclasses import dataclass
from typing import List, Optional

# Dunder attributes ordinary classes need; every other dunder is refused
ALLOWED_DUNDER_ATTRIBUTES = frozenset({'__init__', '__name__', '__qualname__', '__doc__'})

ALLOWED_DUNDER_NAMES = frozenset({'__name__'})

# Frame, generator and traceback attributes that expose interpreter state
INTERPRETER_ATTRIBUTES = frozenset({
    'f_back', 'f_builtins', 'f_code', 'f_globals', 'f_locals', 'f_trace',
    'tb_frame', 'tb_next',
    'gi_code', 'gi_frame', 'gi_yieldfrom',
    'cr_await', 'cr_code', 'cr_frame',
    'ag_await', 'ag_code', 'ag_frame',
})

# Private attributes are reachable only through these names
PRIVATE_ATTRIBUTE_OWNERS = frozenset({'self', 'cls'})


@dataclass(frozen=True)
class Violation:
    message: str
    line: int

    def __str__(self) -> str:
        return f"{self.message} (line {self.line})"


def _is_dunder(name: str) -> bool:
    return len(name) > 4 and name.startswith('__') and name.endswith('__')


class RestrictedCodeVisitor(ast.NodeVisitor):
    """Collects the constructs the sandbox refuses to run."""

    def __init__(self):
        self.violations: List[Violation] = []

    def _flag(self, node: ast.AST, message: str):
        self.violations.append(Violation(message, getattr(node, 'lineno', 0)))

    def _check_attribute(self, node: ast.AST, attr: str, owner: Optional[str] = None):
        if _is_dunder(attr):
            if attr not in ALLOWED_DUNDER_ATTRIBUTES:
                self._flag(node, f"access to '{attr}' is not allowed")
        elif attr in INTERPRETER_ATTRIBUTES:
            self._flag(node, f"access to '{attr}' is not allowed")
        elif attr.startswith('_') and owner not in PRIVATE_ATTRIBUTE_OWNERS:
            self._flag(node, f"private attribute '{attr}' is only reachable through self or cls")

    def visit_Attribute(self, node: ast.Attribute):
        owner = node.value.id if isinstance(node.value, ast.Name) else None
        self._check_attribute(node, node.attr, owner)
        self.generic_visit(node)

    def visit_Name(self, node: ast.Name):
        if _is_dunder(node.id) and node.id not in ALLOWED_DUNDER_NAMES:
            self._flag(node, f"name '{node.id}' is not allowed")

    def visit_MatchClass(self, node):
        # Class patterns read their keyword attributes with getattr
        for attr in node.kwd_attrs:
            self._check_attribute(node, attr)
        self.generic_visit(node)


def find_violations(tree: ast.AST) -> List[Violation]:
    """Every refused construct in a parsed module, in source order."""
    visitor = RestrictedCodeVisitor()
    visitor.visit(tree)
    return sorted(visitor.violations, key=lambda v: v.line)
