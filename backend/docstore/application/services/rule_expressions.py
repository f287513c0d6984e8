"""Rule expressions — a small interpreted language for access rules.

Expressions are parsed with PLY into a closed set of node types and
evaluated against bound variables (``user``, ``data``, ``newData``) and a
fixed table of functions (``get``, ``isOwner``). Nothing is ever handed to
``eval``.

Grammar, lowest precedence first::

    expression := expression "=" expression
                | expression ("||" | "or") expression
                | expression ("&&" | "and") expression
                | ("!" | "not") expression
                | expression ("==" | "!=" | "===" | "!==" | "<" | "<=" | ">" | ">=") expression
                | postfix
    postfix    := postfix "." NAME | postfix "[" expression "]" | postfix "(" args ")" | primary
    primary    := NUMBER | STRING | true | false | null | undefined | NAME | "(" expression ")"
"""

import logging
import re
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from ply.lex import TOKEN, lex
from ply.yacc import yacc

from docstore.domain.comparison import compare_order, is_number, loose_equals, strict_equals, truthy
from docstore.domain.exceptions import RuleEvaluationError

logger = logging.getLogger(__name__)

ASSIGNABLE_ROOTS = frozenset({"data", "newData"})

_KEYWORDS = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"'}

_STRING = r"'(?:[^'\\]|\\.)*'" + "|" + r'"(?:[^"\\]|\\.)*"'


class EvaluationContext:
    """Variables and callable helpers visible to one evaluation."""

    def __init__(
        self,
        variables: Mapping[str, Any],
        functions: Mapping[str, Callable[..., Any]] | None = None,
    ):
        self.variables = dict(variables)
        self.functions = dict(functions or {})


# ── Nodes ───────────────────────────────────────────────────────────


class Node:
    def evaluate(self, ctx: EvaluationContext) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class Literal(Node):
    value: Any

    def evaluate(self, ctx: EvaluationContext) -> Any:
        return self.value


@dataclass(frozen=True)
class Name(Node):
    name: str

    def evaluate(self, ctx: EvaluationContext) -> Any:
        if self.name not in ctx.variables:
            raise ValueError(f"{self.name} is not defined")
        return ctx.variables[self.name]


@dataclass(frozen=True)
class Member(Node):
    target: Node
    name: str

    def evaluate(self, ctx: EvaluationContext) -> Any:
        return _read_property(self.target.evaluate(ctx), self.name)


@dataclass(frozen=True)
class Index(Node):
    target: Node
    key: Node

    def evaluate(self, ctx: EvaluationContext) -> Any:
        return _read_property(self.target.evaluate(ctx), self.key.evaluate(ctx))


@dataclass(frozen=True)
class Call(Node):
    function: str
    args: tuple[Node, ...]

    def evaluate(self, ctx: EvaluationContext) -> Any:
        func = ctx.functions.get(self.function)
        if func is None:
            raise ValueError(f"{self.function} is not a function")
        return func(*(arg.evaluate(ctx) for arg in self.args))


@dataclass(frozen=True)
class Not(Node):
    operand: Node

    def evaluate(self, ctx: EvaluationContext) -> Any:
        return not truthy(self.operand.evaluate(ctx))


@dataclass(frozen=True)
class Compare(Node):
    op: str
    left: Node
    right: Node

    def evaluate(self, ctx: EvaluationContext) -> Any:
        left, right = self.left.evaluate(ctx), self.right.evaluate(ctx)
        if self.op == "==":
            return loose_equals(left, right)
        if self.op == "!=":
            return not loose_equals(left, right)
        if self.op == "===":
            return strict_equals(left, right)
        if self.op == "!==":
            return not strict_equals(left, right)
        order = compare_order(left, right)
        if order is None:
            return False
        return {"<": order < 0, "<=": order <= 0, ">": order > 0, ">=": order >= 0}[self.op]


@dataclass(frozen=True)
class Logical(Node):
    """Short-circuit ``and``/``or`` returning the deciding operand, as in JS."""

    op: str
    left: Node
    right: Node

    def evaluate(self, ctx: EvaluationContext) -> Any:
        left = self.left.evaluate(ctx)
        if self.op == "and":
            return self.right.evaluate(ctx) if truthy(left) else left
        return left if truthy(left) else self.right.evaluate(ctx)


@dataclass(frozen=True)
class Assign(Node):
    """``data.x = expr`` / ``newData[k] = expr``; evaluates to the assigned value."""

    target: Member | Index
    value: Node

    def evaluate(self, ctx: EvaluationContext) -> Any:
        container = self.target.target.evaluate(ctx)
        if isinstance(self.target, Member):
            key = self.target.name
        else:
            key = self.target.key.evaluate(ctx)
        if not isinstance(container, dict):
            raise ValueError(f"cannot set property '{key}' of {_describe(container)}")
        value = self.value.evaluate(ctx)
        container[str(key)] = value
        return value


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    return type(value).__name__


def _read_property(container: Any, key: Any) -> Any:
    if container is None:
        raise ValueError(f"cannot read property '{key}' of null")
    if isinstance(container, dict):
        return container.get(str(key) if not isinstance(key, str) else key)
    if isinstance(container, (list, str)):
        if key == "length":
            return len(container)
        if is_number(key) and float(key).is_integer() and 0 <= int(key) < len(container):
            return container[int(key)]
        return None
    return None


def _root_name(node: Node) -> str | None:
    while isinstance(node, (Member, Index)):
        node = node.target
    return node.name if isinstance(node, Name) else None


def _unquote(text: str) -> str:
    body = text[1:-1]
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


# ── Parsing ─────────────────────────────────────────────────────────


class RuleLexer:
    """PLY lexer for rule expressions."""

    reserved = {
        "true": "TRUE",
        "false": "FALSE",
        "null": "NULL",
        "undefined": "UNDEFINED",
        "and": "AND",
        "or": "OR",
        "not": "NOT",
    }

    tokens = [
        "NUMBER", "STRING", "NAME",
        "TRUE", "FALSE", "NULL", "UNDEFINED",
        "AND", "OR", "NOT",
        "SEQ", "SNE", "EQ", "NE", "LE", "GE", "LT", "GT",
        "ASSIGN", "LPAREN", "RPAREN", "LBRACKET", "RBRACKET", "DOT", "COMMA",
    ]

    # String rules are matched longest pattern first.
    t_SEQ = r"==="
    t_SNE = r"!=="
    t_EQ = r"=="
    t_NE = r"!="
    t_LE = r"<="
    t_GE = r">="
    t_LT = r"<"
    t_GT = r">"
    t_ASSIGN = r"="
    t_AND = r"&&"
    t_OR = r"\|\|"
    t_NOT = r"!"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"
    t_DOT = r"\."
    t_COMMA = r","

    t_ignore = " \t\r\n"

    def t_NUMBER(self, token):
        r"-?\d+(?:\.\d+)?"
        token.value = float(token.value) if "." in token.value else int(token.value)
        return token

    @TOKEN(_STRING)
    def t_STRING(self, token):
        token.value = _unquote(token.value)
        return token

    def t_NAME(self, token):
        r"[A-Za-z_$][A-Za-z0-9_$]*"
        token.type = self.reserved.get(token.value, "NAME")
        return token

    def t_error(self, token):
        raise ValueError(f"unexpected character at {token.lexpos}: {token.value[:10]!r}")

    def build(self, **kwargs):
        self.lexer = lex(object=self, **kwargs)


class RuleParser:
    """PLY grammar producing expression nodes from ``RuleLexer`` tokens."""

    tokens = RuleLexer.tokens
    start = "expression"

    precedence = (
        ("right", "ASSIGN"),
        ("left", "OR"),
        ("left", "AND"),
        ("right", "NOT"),
        ("nonassoc", "SEQ", "SNE", "EQ", "NE", "LE", "GE", "LT", "GT"),
    )

    def p_expression_assign(self, production):
        """expression : expression ASSIGN expression"""
        target = production[1]
        if not isinstance(target, (Member, Index)) or _root_name(target) not in ASSIGNABLE_ROOTS:
            raise ValueError("only fields of data or newData can be assigned")
        production[0] = Assign(target, production[3])

    def p_expression_or(self, production):
        """expression : expression OR expression"""
        production[0] = Logical("or", production[1], production[3])

    def p_expression_and(self, production):
        """expression : expression AND expression"""
        production[0] = Logical("and", production[1], production[3])

    def p_expression_not(self, production):
        """expression : NOT expression"""
        production[0] = Not(production[2])

    def p_expression_compare(self, production):
        """
        expression : expression SEQ expression
                   | expression SNE expression
                   | expression EQ expression
                   | expression NE expression
                   | expression LE expression
                   | expression GE expression
                   | expression LT expression
                   | expression GT expression
        """
        production[0] = Compare(production[2], production[1], production[3])

    def p_expression_postfix(self, production):
        """expression : postfix"""
        production[0] = production[1]

    def p_postfix_member(self, production):
        """postfix : postfix DOT NAME"""
        production[0] = Member(production[1], production[3])

    def p_postfix_index(self, production):
        """postfix : postfix LBRACKET expression RBRACKET"""
        production[0] = Index(production[1], production[3])

    def p_postfix_call(self, production):
        """postfix : postfix LPAREN arguments RPAREN"""
        if not isinstance(production[1], Name):
            raise ValueError("only named functions can be called")
        production[0] = Call(production[1].name, tuple(production[3]))

    def p_postfix_primary(self, production):
        """postfix : primary"""
        production[0] = production[1]

    def p_arguments_empty(self, production):
        """arguments :"""
        production[0] = []

    def p_arguments_list(self, production):
        """arguments : argument_list"""
        production[0] = production[1]

    def p_argument_list_first(self, production):
        """argument_list : expression"""
        production[0] = [production[1]]

    def p_argument_list_next(self, production):
        """argument_list : argument_list COMMA expression"""
        production[0] = production[1] + [production[3]]

    def p_primary_literal(self, production):
        """
        primary : NUMBER
                | STRING
        """
        production[0] = Literal(production[1])

    def p_primary_keyword(self, production):
        """
        primary : TRUE
                | FALSE
                | NULL
                | UNDEFINED
        """
        production[0] = Literal(_KEYWORDS[production[1]])

    def p_primary_name(self, production):
        """primary : NAME"""
        production[0] = Name(production[1])

    def p_primary_group(self, production):
        """primary : LPAREN expression RPAREN"""
        production[0] = production[2]

    def p_error(self, token):
        if token is None:
            raise ValueError("unexpected end of expression")
        raise ValueError(f"unexpected token {token.value!r} at {token.lexpos}")

    def build(self, **kwargs):
        self._yacc = yacc(module=self, **kwargs)

    def parse(self, source: str, lexer: RuleLexer) -> Node:
        return self._yacc.parse(input=source, lexer=lexer.lexer)


# PLY lexers and parsers keep per-parse state on the instance.
_PARSE_LOCK = threading.Lock()


@lru_cache(maxsize=1)
def _build_parser() -> tuple[RuleLexer, RuleParser]:
    lexer = RuleLexer()
    lexer.build()
    parser = RuleParser()
    parser.build(debug=False, write_tables=False)
    logger.debug("Rule expression parser built")
    return lexer, parser


@lru_cache(maxsize=256)
def compile_rule(source: str) -> Node:
    """Parse ``source`` into an expression tree (cached per source text)."""
    try:
        with _PARSE_LOCK:
            lexer, parser = _build_parser()
            return parser.parse(source, lexer)
    except ValueError as exc:
        raise RuleEvaluationError(source, str(exc)) from exc


def evaluate_rule(source: str, ctx: EvaluationContext) -> Any:
    """Evaluate a rule expression and return its raw (JS-like) value."""
    tree = compile_rule(source)
    try:
        return tree.evaluate(ctx)
    except RuleEvaluationError:
        raise
    except (ValueError, TypeError, LookupError) as exc:
        raise RuleEvaluationError(source, str(exc)) from exc
