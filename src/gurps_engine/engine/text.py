"""Text and expression resolution.

Attribute bases, pool thresholds and note text may carry expressions such as
``($dx+$ht)/4`` or ``floor($basic_speed)``. Note text embeds them between
double bars: ``"Lifts ||$st*2|| lb"``.

Expressions support decimal numbers, double-quoted strings, ``$variable``
references, the operators ``+ - * / % ^``, comparisons, ``&`` / ``|`` (also
``&&``) and ``!`` for logic, and these functions:

    abs, ceil, floor, round, trunc, sqrt, min, max, if,
    has_trait, trait_level, skill_level, enc, signed

Evaluation never raises to the caller; failures are logged and resolve to
an empty string or zero.
"""

from __future__ import annotations

import re

from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from gurps_engine.core.exceptions import ExpressionError
from gurps_engine.core.fixed import ONE, TEN, TWO, ZERO, ceil, fixed_str, floor, round_half, trunc, with_sign
from gurps_engine.core.logging import get_logger


if TYPE_CHECKING:
    from gurps_engine.models.entity import Entity


logger = get_logger(__name__)

Value = Decimal | bool | str

_EMBEDDED = re.compile(r"\|\|(.+?)\|\|", re.DOTALL)
_TOKEN = re.compile(
    r"""
    \s*(?:
        (?P<number>\d+\.?\d*|\.\d+)
      | (?P<string>"[^"]*")
      | (?P<variable>\$[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_]+)?)
      | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
      | (?P<op>==|!=|<=|>=|&&|[-+*/%^<>!(),&|])
    )
    """,
    re.VERBOSE,
)


# =============================================================================
# Resolver Protocol
# =============================================================================


@runtime_checkable
class TextResolver(Protocol):
    """Turns raw note/value text into display text for an entity."""

    def resolve_text(self, entity: Entity | None, context: Any, template: str) -> str: ...


# =============================================================================
# Tokenizer and Parser
# =============================================================================


def _tokenize(expression: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    position = 0
    text = expression.rstrip()
    while position < len(text):
        match = _TOKEN.match(text, position)
        if match is None or match.end() == position:
            raise ExpressionError(f"Unexpected character at {position}", expression=expression)
        kind = match.lastgroup or ""
        tokens.append((kind, match.group(kind)))
        position = match.end()
    return tokens


def _to_number(value: Value, expression: str) -> Decimal:
    if isinstance(value, bool):
        return ONE if value else ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(value.strip() or "0")
    except InvalidOperation as exc:
        raise ExpressionError(f"Not a number: {value!r}", expression=expression) from exc


def _to_bool(value: Value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _to_text(value: Value) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, Decimal):
        return fixed_str(value)
    return value


class _Parser:
    """Recursive-descent evaluator over one token list."""

    def __init__(self, entity: Entity | None, expression: str) -> None:
        self.entity = entity
        self.expression = expression
        self.tokens = _tokenize(expression)
        self.index = 0

    def evaluate(self) -> Value:
        if not self.tokens:
            return ZERO
        value = self._or()
        if self.index != len(self.tokens):
            raise ExpressionError(f"Unexpected token {self.tokens[self.index][1]!r}", expression=self.expression)
        return value

    def _peek(self) -> str | None:
        if self.index < len(self.tokens):
            kind, text = self.tokens[self.index]
            return text if kind == "op" else None
        return None

    def _take(self, *ops: str) -> str | None:
        op = self._peek()
        if op is not None and op in ops:
            self.index += 1
            return op
        return None

    def _expect(self, op: str) -> None:
        if self._take(op) is None:
            raise ExpressionError(f"Expected {op!r}", expression=self.expression)

    def _number(self, value: Value) -> Decimal:
        return _to_number(value, self.expression)

    # -------------------------------------------------------------------------
    # Precedence Levels
    # -------------------------------------------------------------------------

    def _or(self) -> Value:
        left = self._and()
        while self._take("|"):
            right = self._and()
            left = _to_bool(left) or _to_bool(right)
        return left

    def _and(self) -> Value:
        left = self._comparison()
        while self._take("&", "&&"):
            right = self._comparison()
            left = _to_bool(left) and _to_bool(right)
        return left

    def _comparison(self) -> Value:
        left = self._additive()
        while (op := self._take("==", "!=", "<", "<=", ">", ">=")) is not None:
            right = self._additive()
            if isinstance(left, str) or isinstance(right, str):
                a: Any = _to_text(left)
                b: Any = _to_text(right)
            else:
                a = self._number(left)
                b = self._number(right)
            match op:
                case "==":
                    left = a == b
                case "!=":
                    left = a != b
                case "<":
                    left = a < b
                case "<=":
                    left = a <= b
                case ">":
                    left = a > b
                case _:
                    left = a >= b
        return left

    def _additive(self) -> Value:
        left = self._multiplicative()
        while (op := self._take("+", "-")) is not None:
            right = self._multiplicative()
            if op == "+" and (isinstance(left, str) or isinstance(right, str)):
                left = _to_text(left) + _to_text(right)
            elif op == "+":
                left = self._number(left) + self._number(right)
            else:
                left = self._number(left) - self._number(right)
        return left

    def _multiplicative(self) -> Value:
        left = self._power()
        while (op := self._take("*", "/", "%")) is not None:
            right = self._number(self._power())
            if op == "*":
                left = self._number(left) * right
                continue
            if right == ZERO:
                raise ExpressionError("Division by zero", expression=self.expression)
            left = self._number(left) / right if op == "/" else self._number(left) % right
        return left

    def _power(self) -> Value:
        base = self._unary()
        if self._take("^"):
            exponent = self._number(self._power())
            return self._number(base) ** exponent
        return base

    def _unary(self) -> Value:
        if self._take("-"):
            return -self._number(self._unary())
        if self._take("+"):
            return self._number(self._unary())
        if self._take("!"):
            return not _to_bool(self._unary())
        return self._primary()

    def _primary(self) -> Value:
        if self.index >= len(self.tokens):
            raise ExpressionError("Unexpected end of expression", expression=self.expression)
        kind, text = self.tokens[self.index]
        self.index += 1
        match kind:
            case "number":
                return Decimal(text)
            case "string":
                return text[1:-1]
            case "variable":
                return self._variable(text[1:])
            case "name":
                if self._take("("):
                    return self._call(text.lower(), self._arguments())
                if text.lower() in ("true", "false"):
                    return text.lower() == "true"
                raise ExpressionError(f"Unknown name {text!r}", expression=self.expression)
        if text == "(":
            value = self._or()
            self._expect(")")
            return value
        raise ExpressionError(f"Unexpected token {text!r}", expression=self.expression)

    def _arguments(self) -> list[Value]:
        args: list[Value] = []
        if self._take(")"):
            return args
        while True:
            args.append(self._or())
            if self._take(")"):
                return args
            self._expect(",")

    # -------------------------------------------------------------------------
    # Variables and Functions
    # -------------------------------------------------------------------------

    def _variable(self, name: str) -> Value:
        if self.entity is None:
            return ZERO
        text = self.entity.resolve_variable(name)
        if not text:
            return ZERO
        try:
            return Decimal(text)
        except InvalidOperation:
            return text

    def _call(self, name: str, args: list[Value]) -> Value:
        function = _FUNCTIONS.get(name)
        if function is None:
            raise ExpressionError(f"Unknown function {name!r}", expression=self.expression)
        return function(self, args)

    def _arg(self, args: list[Value], index: int, default: Value | None = None) -> Value:
        if index < len(args):
            return args[index]
        if default is None:
            raise ExpressionError("Missing function argument", expression=self.expression)
        return default


def _single(apply: Callable[[Decimal], Decimal]) -> Callable[[_Parser, list[Value]], Value]:
    def call(parser: _Parser, args: list[Value]) -> Value:
        return apply(parser._number(parser._arg(args, 0)))

    return call


def _min(parser: _Parser, args: list[Value]) -> Value:
    if not args:
        raise ExpressionError("min needs arguments", expression=parser.expression)
    return min(parser._number(one) for one in args)


def _max(parser: _Parser, args: list[Value]) -> Value:
    if not args:
        raise ExpressionError("max needs arguments", expression=parser.expression)
    return max(parser._number(one) for one in args)


def _if(parser: _Parser, args: list[Value]) -> Value:
    if _to_bool(parser._arg(args, 0)):
        return parser._arg(args, 1)
    return parser._arg(args, 2, "")


def _has_trait(parser: _Parser, args: list[Value]) -> Value:
    from gurps_engine.models.node import collect

    if parser.entity is None:
        return False
    wanted = _to_text(parser._arg(args, 0)).lower()
    return any(trait.name.lower() == wanted for trait in collect(True, False, *parser.entity.traits))


def _trait_level(parser: _Parser, args: list[Value]) -> Value:
    """Summed levels of matching leveled traits; -1 when none is leveled."""
    from gurps_engine.models.node import collect

    if parser.entity is None:
        return -ONE
    wanted = _to_text(parser._arg(args, 0)).lower()
    levels: Decimal | None = None
    for trait in collect(True, False, *parser.entity.traits):
        if trait.name.lower() == wanted and trait.is_leveled:
            levels = trait.levels if levels is None else levels + trait.levels
    return -ONE if levels is None else levels


def _skill_level(parser: _Parser, args: list[Value]) -> Value:
    """Resolved level (or relative level) of the first matching skill."""
    from gurps_engine.models.node import collect

    if parser.entity is None:
        return ZERO
    name = _to_text(parser._arg(args, 0)).lower()
    specialization = _to_text(parser._arg(args, 1, "")).lower()
    relative = _to_bool(parser._arg(args, 2, False))
    for skill in collect(True, True, *parser.entity.skills):
        if skill.name.lower() == name and skill.specialization.lower() == specialization:
            return skill.level_data.relative_level if relative else skill.level_data.level
    return ZERO


def _enc(parser: _Parser, args: list[Value]) -> Value:
    """Encumbrance level, or the matching move factor when asked."""
    if parser.entity is None:
        return ZERO
    for_skills = _to_bool(parser._arg(args, 0, False))
    factor = _to_bool(parser._arg(args, 1, False))
    level = Decimal(int(parser.entity.encumbrance_level(for_skills)))
    if factor:
        return ONE - level * TWO / TEN
    return level


def _signed(parser: _Parser, args: list[Value]) -> Value:
    return with_sign(parser._number(parser._arg(args, 0)))


def _sqrt(parser: _Parser, args: list[Value]) -> Value:
    value = parser._number(parser._arg(args, 0))
    if value < ZERO:
        raise ExpressionError("Square root of a negative number", expression=parser.expression)
    return value.sqrt()


_FUNCTIONS: dict[str, Callable[[_Parser, list[Value]], Value]] = {
    "abs": _single(abs),
    "ceil": _single(ceil),
    "floor": _single(floor),
    "round": _single(round_half),
    "trunc": _single(trunc),
    "sqrt": _sqrt,
    "min": _min,
    "max": _max,
    "if": _if,
    "has_trait": _has_trait,
    "trait_level": _trait_level,
    "advantage_level": _trait_level,
    "skill_level": _skill_level,
    "enc": _enc,
    "signed": _signed,
}


# =============================================================================
# Public API
# =============================================================================


def evaluate(entity: Entity | None, expression: str) -> Value:
    """Evaluate an expression, raising ``ExpressionError`` when malformed."""
    try:
        return _Parser(entity, expression).evaluate()
    except ArithmeticError as exc:
        raise ExpressionError(str(exc) or type(exc).__name__, expression=expression) from exc


def evaluate_number(entity: Entity | None, expression: str) -> Decimal:
    """Evaluate an expression to a number; malformed input yields zero."""
    if not expression.strip():
        return ZERO
    try:
        return _to_number(evaluate(entity, expression), expression)
    except ExpressionError as exc:
        logger.warning("Unable to evaluate expression", expression=expression, error=exc.message)
        return ZERO


class ExpressionTextResolver:
    """Resolves ``||expr||`` segments against an entity's variables."""

    def resolve_text(self, entity: Entity | None, context: Any, template: str) -> str:
        def replace(match: re.Match[str]) -> str:
            expression = match.group(1)
            try:
                return _to_text(evaluate(entity, expression))
            except ExpressionError as exc:
                logger.warning(
                    "Unable to resolve embedded expression",
                    expression=expression,
                    context=str(context) if context is not None else None,
                    error=exc.message,
                )
                return ""

        return _EMBEDDED.sub(replace, template)

    def evaluate_number(self, entity: Entity | None, expression: str) -> Decimal:
        return evaluate_number(entity, expression)


__all__ = [
    "TextResolver",
    "ExpressionTextResolver",
    "evaluate",
    "evaluate_number",
]
