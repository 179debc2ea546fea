# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Reference tools shipped with the bundled server.

Every tool reports bad input as a failed :class:`~capmcp.tool.ToolResult`
rather than raising.
"""

from __future__ import annotations

import ast
from datetime import datetime, timezone
import math
import operator
import random
import re
import time
from typing import Any

from ..tool import ToolResult, tool


_SAFE_EXPRESSION = re.compile(r"^[0-9+\-*/().\s]+$")
_MAX_EXPONENT = 1000
_MAX_RESULT_DIGITS = 4200
_MAX_RESULT_BITS = 14_000

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}
_UNARY_OPERATORS = {ast.UAdd: operator.pos, ast.USub: operator.neg}

STRING_OPERATIONS = ("uppercase", "lowercase", "reverse", "length", "words")


class ExpressionError(ValueError):
    """Raised for expressions the calculator refuses to evaluate."""


def evaluate_expression(expression: str) -> int | float:
    """Evaluate an arithmetic expression without ``eval``.

    Supports numbers, ``+ - * / **``, unary signs and parentheses.
    """
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as exc:
        raise ExpressionError(f"Invalid expression: {exc.msg}") from exc
    return _evaluate(tree.body)


def _evaluate(node: ast.AST) -> int | float:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return node.value
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_evaluate(node.operand))
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        left = _evaluate(node.left)
        right = _evaluate(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            raise ExpressionError("Invalid expression: exponent too large")
        if isinstance(node.op, ast.Pow) and _power_digits(left, right) > _MAX_RESULT_DIGITS:
            raise ExpressionError("Invalid expression: result too large")
        if isinstance(node.op, ast.Div) and right == 0:
            raise ExpressionError("Invalid expression: division by zero")
        result = _BINARY_OPERATORS[type(node.op)](left, right)
        if isinstance(result, complex):
            raise ExpressionError("Invalid expression: result is not a real number")
        if isinstance(result, int) and result.bit_length() > _MAX_RESULT_BITS:
            raise ExpressionError("Invalid expression: result too large")
        return result
    raise ExpressionError("Invalid expression: unsupported syntax")


def _power_digits(base: int | float, exponent: int | float) -> float:
    """Approximate decimal digits of |base| ** exponent, computed without evaluating it."""
    magnitude = abs(base)
    if magnitude <= 1 or exponent <= 0:
        return 0.0
    return exponent * math.log10(magnitude)


def format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def iso_timestamp(now: datetime | None = None) -> str:
    current = now or datetime.now(timezone.utc)
    return current.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@tool(
    description="Echo back the provided message",
    input_schema={
        "type": "object",
        "properties": {"message": {"type": "string", "description": "The message to echo back"}},
        "required": ["message"],
    },
)
def echo(message: str = "") -> ToolResult:
    if not message:
        return ToolResult.fail("Message is required")
    return ToolResult.ok(f"Echo: {message}", originalLength=len(message))


@tool(
    description="Perform mathematical calculations",
    input_schema={
        "type": "object",
        "properties": {
            "expression": {
                "type": "string",
                "description": 'Mathematical expression to evaluate (e.g., "2 + 2")',
            }
        },
        "required": ["expression"],
    },
)
def calculate(expression: str = "") -> ToolResult:
    if not expression:
        return ToolResult.fail("Expression is required")
    if not isinstance(expression, str) or not _SAFE_EXPRESSION.match(expression):
        return ToolResult.fail("Expression contains invalid characters")

    try:
        value = evaluate_expression(expression)
    except ExpressionError as exc:
        return ToolResult.fail(str(exc))
    except (OverflowError, ZeroDivisionError) as exc:
        return ToolResult.fail(f"Invalid expression: {exc}")

    return ToolResult.ok(f"{expression} = {format_number(value)}", expression=expression, result=value)


@tool(
    name="get_timestamp",
    description="Get the current timestamp",
    input_schema={
        "type": "object",
        "properties": {
            "format": {
                "type": "string",
                "description": "Format for the timestamp (iso, unix, locale)",
                "enum": ["iso", "unix", "locale"],
            }
        },
    },
)
def get_timestamp(format: str | None = None) -> ToolResult:
    selected = (format or "iso").lower() if isinstance(format, str) else "iso"
    if selected == "unix":
        text = str(int(time.time()))
    elif selected == "locale":
        text = datetime.now().astimezone().strftime("%c")
    else:
        text = iso_timestamp()
    return ToolResult.ok(text, format=format or "iso")


@tool(
    name="random_number",
    description="Generate a random number",
    input_schema={
        "type": "object",
        "properties": {
            "min": {"type": "number", "description": "Minimum value (inclusive)", "default": 0},
            "max": {"type": "number", "description": "Maximum value (inclusive)", "default": 100},
            "isInteger": {"type": "boolean", "description": "Whether to return an integer", "default": True},
        },
    },
)
def random_number(min: float = 0, max: float = 100, isInteger: bool = True) -> ToolResult:  # noqa: A002
    if min > max:
        return ToolResult.fail("Minimum value cannot be greater than maximum value")

    value: Any = random.uniform(min, max)
    if isInteger:
        value = int(value // 1)
    return ToolResult.ok(format_number(value), min=min, max=max, isInteger=isInteger, value=value)


@tool(
    name="string_manipulation",
    description="Perform string operations",
    input_schema={
        "type": "object",
        "properties": {
            "text": {"type": "string", "description": "The text to manipulate"},
            "operation": {
                "type": "string",
                "description": "The operation to perform",
                "enum": list(STRING_OPERATIONS),
            },
        },
        "required": ["text", "operation"],
    },
)
def string_manipulation(text: str = "", operation: str | None = None) -> ToolResult:
    if not text:
        return ToolResult.fail("Text is required")

    if operation == "uppercase":
        result = text.upper()
    elif operation == "lowercase":
        result = text.lower()
    elif operation == "reverse":
        result = text[::-1]
    elif operation == "length":
        result = str(len(text))
    elif operation == "words":
        result = f"Word count: {len(text.split())}"
    else:
        return ToolResult.fail(f"Unknown operation: {operation}")

    return ToolResult.ok(result, operation=operation, originalLength=len(text))


REFERENCE_TOOLS = (echo, calculate, get_timestamp, random_number, string_manipulation)


__all__ = [
    "REFERENCE_TOOLS",
    "ExpressionError",
    "calculate",
    "echo",
    "evaluate_expression",
    "format_number",
    "get_timestamp",
    "iso_timestamp",
    "random_number",
    "string_manipulation",
]
