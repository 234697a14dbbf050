"""
Expression engine.

Parses a user-entered formula z = f(x, y) into an immutable `Expression` and
evaluates it pointwise. User text is never handed to sympy unchecked: it is
scanned for unknown characters, checked for balanced parentheses and validated
against an AST whitelist first. The validated tree is then rebuilt as an
unevaluated sympy expression with float literals and lambdified to numpy.

Nothing is folded at parse time. `1/0`, `ln(0)` or `9^9^9` parse fine and
fail per sample, so evaluation reports them as `EvalFailure` values and the
mesh falls back to z = 0 there.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
import logging
import math
import re
from typing import Any, Callable, Optional, Union

import numpy as np
import sympy as sp

from .logging_utils import log_once

_LOGGER = logging.getLogger(__name__)

X_SYMBOL = sp.Symbol("x", real=True)
Y_SYMBOL = sp.Symbol("y", real=True)

VARIABLES = ("x", "y")

# Truncated remainder (sign follows the dividend) and base-10 log.
FMOD = sp.Function("fmod")
LOG10 = sp.Function("log10")

SUPPORTED_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "asin": sp.asin,
    "acos": sp.acos,
    "atan": sp.atan,
    "sinh": sp.sinh,
    "cosh": sp.cosh,
    "tanh": sp.tanh,
    "exp": sp.exp,
    "ln": sp.log,
    "log": LOG10,
    "abs": sp.Abs,
    "sqrt": sp.sqrt,
}

SUPPORTED_CONSTANTS: dict[str, Any] = {
    "pi": sp.pi,
    "e": sp.E,
}

SUPPORTED_OPERATORS = ("+", "-", "*", "/", "^", "%")

EXAMPLE_EXPRESSIONS = (
    "sin(x) * cos(y)",
    "x^2 + y^2",
    "sin(sqrt(x^2 + y^2))",
    "exp(-(x^2 + y^2))",
    "sin(x*y)",
)

_NUMPY_MODULES = [{"fmod": np.fmod, "log10": np.log10}, "numpy"]

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    | (?P<name>[A-Za-z_][A-Za-z_0-9]*)
    | (?P<op>\*\*|[-+*/^%(),])
    """,
    re.VERBOSE,
)

_ALLOWED_NODE_TYPES = (
    ast.Expression,
    ast.BinOp,
    ast.UnaryOp,
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.Mod,
    ast.Pow,
    ast.USub,
    ast.UAdd,
    ast.Call,
    ast.Name,
    ast.Load,
    ast.Constant,
)

_NEG_ONE = sp.S.NegativeOne

_BINARY_OPS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: lambda a, b: sp.Add(a, b, evaluate=False),
    ast.Sub: lambda a, b: sp.Add(a, sp.Mul(_NEG_ONE, b, evaluate=False), evaluate=False),
    ast.Mult: lambda a, b: sp.Mul(a, b, evaluate=False),
    ast.Div: lambda a, b: sp.Mul(a, sp.Pow(b, _NEG_ONE, evaluate=False), evaluate=False),
    ast.Pow: lambda a, b: sp.Pow(a, b, evaluate=False),
    ast.Mod: lambda a, b: FMOD(a, b, evaluate=False),
}


class ParseError(ValueError):
    """Formula text is not a valid expression. `reason` is human readable."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class EvalFailure:
    """A single (x, y) sample is undefined or non-finite."""
    reason: str


EvalResult = Union[float, EvalFailure]


@dataclass(frozen=True)
class Expression:
    """
    Parsed, evaluable formula over `x` and `y`.

    Attributes:
        text: formula as entered by the user
        canonical: sympy rendering of the parsed tree, for display
    """
    text: str
    canonical: str
    _sympy: Any = field(repr=False, compare=False)
    _fn: Callable[..., Any] = field(repr=False, compare=False)

    @property
    def sympy_expr(self) -> sp.Expr:
        return self._sympy

    @property
    def free_variables(self) -> tuple[str, ...]:
        names = {str(s) for s in self._sympy.free_symbols}
        return tuple(v for v in VARIABLES if v in names)

    def evaluate(self, x: float, y: float) -> EvalResult:
        return evaluate(self, x, y)

    def __call__(self, x: float, y: float) -> Optional[float]:
        """Evaluator protocol used by SurfaceMesh: finite z or None."""
        result = evaluate(self, x, y)
        if isinstance(result, EvalFailure):
            return None
        return result


class _FormulaValidator(ast.NodeVisitor):
    def generic_visit(self, node: ast.AST) -> None:
        if not isinstance(node, _ALLOWED_NODE_TYPES):
            raise ParseError(f"Unsupported syntax: {type(node).__name__}")
        super().generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        if not isinstance(node.func, ast.Name):
            raise ParseError("Only simple function calls are allowed, e.g. sin(x)")
        name = node.func.id
        if name not in SUPPORTED_FUNCTIONS:
            raise ParseError(f"Unknown function: {name}")
        if node.keywords:
            raise ParseError(f"Keyword arguments are not allowed in {name}()")
        if len(node.args) != 1:
            raise ParseError(f"{name}() takes exactly one argument ({len(node.args)} given)")
        for arg in node.args:
            self.visit(arg)

    def visit_Name(self, node: ast.Name) -> None:
        ident = node.id
        if ident in SUPPORTED_FUNCTIONS:
            raise ParseError(f"Function {ident} must be called with an argument, e.g. {ident}(x)")
        if ident not in VARIABLES and ident not in SUPPORTED_CONSTANTS:
            raise ParseError(f"Unknown identifier: {ident}")

    def visit_Constant(self, node: ast.Constant) -> None:
        value = node.value
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ParseError(f"Unsupported literal: {value!r}")


class _SympyBuilder(ast.NodeVisitor):
    """Validated AST -> unevaluated sympy tree with float literals."""

    _names = {"x": X_SYMBOL, "y": Y_SYMBOL, **SUPPORTED_CONSTANTS}

    def generic_visit(self, node: ast.AST) -> Any:
        raise ParseError(f"Unsupported syntax: {type(node).__name__}")

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Constant(self, node: ast.Constant) -> Any:
        try:
            value = float(node.value)
        except OverflowError:
            value = math.inf
        return sp.Float(value)

    def visit_Name(self, node: ast.Name) -> Any:
        return self._names[node.id]

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.USub):
            return sp.Mul(_NEG_ONE, operand, evaluate=False)
        return operand

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        left = self.visit(node.left)
        right = self.visit(node.right)
        return _BINARY_OPS[type(node.op)](left, right)

    def visit_Call(self, node: ast.Call) -> Any:
        func = SUPPORTED_FUNCTIONS[node.func.id]
        return func(self.visit(node.args[0]), evaluate=False)


def _check_tokens(text: str) -> None:
    pos = 0
    depth = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ParseError(f"Unknown token {text[pos]!r} at position {pos + 1}")
        op = match.group("op")
        if op == "(":
            depth += 1
        elif op == ")":
            depth -= 1
            if depth < 0:
                raise ParseError(f"Unbalanced parentheses: unexpected ')' at position {pos + 1}")
        pos = match.end()
    if depth > 0:
        raise ParseError(f"Unbalanced parentheses: {depth} unclosed '('")


def _compile(py_source: str) -> tuple[Any, Callable[..., Any]]:
    try:
        tree = ast.parse(py_source, mode="eval")
    except SyntaxError as e:
        raise ParseError(f"Invalid syntax: {e.msg}") from e
    _FormulaValidator().visit(tree)

    sym = _SympyBuilder().visit(tree)
    try:
        fn = sp.lambdify((X_SYMBOL, Y_SYMBOL), sym, modules=_NUMPY_MODULES)
    except (RecursionError, MemoryError):
        raise
    except Exception as e:
        raise ParseError(f"Cannot compile expression: {e}") from e
    return sym, fn


def parse(text: str) -> Expression:
    """
    Parse a formula string.

    Raises:
        ParseError: empty input, unknown token, unbalanced parentheses,
            unknown identifier, wrong argument count, malformed syntax or
            nesting too deep to compile
    """
    source = str(text if text is not None else "").strip()
    if not source:
        raise ParseError("Expression is empty")

    _check_tokens(source)
    py_source = source.replace("^", "**")

    try:
        sym, fn = _compile(py_source)
    except (RecursionError, MemoryError) as e:
        raise ParseError("Expression is too deeply nested") from e

    canonical = sp.sstr(sym, full_prec=False)
    _LOGGER.debug("Parsed %r as %s", source, canonical)
    return Expression(text=source, canonical=canonical, _sympy=sym, _fn=fn)


def evaluate(expr: Expression, x: float, y: float) -> EvalResult:
    """
    Evaluate `expr` at (x, y).

    Returns:
        finite float, or EvalFailure for division by zero, domain errors,
        overflow, complex results and NaN/inf
    """
    try:
        with np.errstate(all="ignore"):
            raw = expr._fn(np.float64(x), np.float64(y))
            value = np.asarray(raw)
            if np.iscomplexobj(value):
                if np.any(value.imag != 0):
                    return EvalFailure("complex result")
                value = value.real
            z = float(value)
    except (ArithmeticError, ValueError, TypeError) as e:
        return EvalFailure(f"{type(e).__name__}: {e}")
    except Exception as e:
        log_once(
            _LOGGER,
            ("evaluate", expr.text),
            logging.WARNING,
            "Unexpected error evaluating %r at (%s, %s)",
            expr.text,
            x,
            y,
            exc_info=True,
        )
        return EvalFailure(f"{type(e).__name__}: {e}")

    if not np.isfinite(z):
        return EvalFailure("non-finite result")
    return z
