# factory_kernel/names/parser.py
"""
Type name parser
──────────────────────────────────────────────
Grammar (whitespace between tokens is ignored):

    full     := name generic? "?"? ("[" "]")* qualifier?
    generic  := "`" NUMBER? | ("<" | "[") param ("," param)* (">" | "]")
    param    := "[" full "]" | name generic? "?"? ("[" "]")*
    qualifier:= "@" name | "," name ("," name "=" value)*

Examples:
    "int?"                      → Optional[int]
    "dict<str, list<int>>"      → dict[str, list[int]]
    "Money[]"                   → list[Money]
    "Money, billing.models"     → Money looked up in billing.models
    "Money@billing.models"      → same
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from factory_kernel.construct.signatures import NoneType, is_nullable

TypeLookup = Callable[[str, Optional[str]], Optional[Any]]

_TOKEN = re.compile(
    r"\s*(?:(?P<name>[A-Za-z_$][\w$.:+]*)|(?P<number>\d[\w.\-]*)|(?P<symbol>[\[\]<>,?@`=]))"
)


def tokenize(text: str) -> Optional[List[str]]:
    tokens: List[str] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = _TOKEN.match(text, pos)
        if m is None or m.end() == pos:
            return None
        tokens.append(m.group(m.lastgroup))
        pos = m.end()
    return tokens


def _is_name(token: Optional[str]) -> bool:
    return token is not None and (token[0].isalpha() or token[0] in "_$")


@dataclass(frozen=True)
class TypeNameTree:
    name: str
    module: Optional[str] = None
    nullable: bool = False
    array_rank: int = 0
    parameters: Tuple["TypeNameTree", ...] = ()

    def __str__(self) -> str:
        text = self.name
        if self.parameters:
            text += "<" + ", ".join(str(p) for p in self.parameters) + ">"
        if self.nullable:
            text += "?"
        text += "[]" * self.array_rank
        if self.module:
            text += "@" + self.module
        return text

    def make_type(self, lookup: TypeLookup) -> Optional[Any]:
        """Build the type this tree names; None when any part is unknown."""
        type_ = lookup(self.name, self.module)
        if type_ is None:
            return None
        if self.parameters:
            args = []
            for p in self.parameters:
                arg = p.make_type(lookup)
                if arg is None or arg is NoneType:
                    return None
                args.append(arg)
            try:
                type_ = type_[tuple(args) if len(args) > 1 else args[0]]
            except TypeError:
                return None
        if type_ is NoneType:
            return type_
        if self.nullable and not is_nullable(type_):
            type_ = Optional[type_]
        for _ in range(self.array_rank):
            type_ = list[type_]
        return type_


class _Parser:
    def __init__(self, tokens: List[str]):
        self.tokens = tokens
        self.pos = 0

    def peek(self, offset: int = 0) -> Optional[str]:
        i = self.pos + offset
        return self.tokens[i] if i < len(self.tokens) else None

    def take(self) -> Optional[str]:
        token = self.peek()
        self.pos += 1
        return token

    def expect(self, token: str) -> None:
        if self.take() != token:
            raise SyntaxError(token)

    def type_name(self, qualified: bool) -> TypeNameTree:
        name = self.take()
        if not _is_name(name):
            raise SyntaxError(name)
        parameters: Tuple[TypeNameTree, ...] = ()
        if self.peek() == "`":
            self.take()
            if self.peek() is not None and self.peek()[0].isdigit():
                self.take()
        if self.peek() == "<":
            self.take()
            parameters = self.parameters(">")
        elif self.peek() == "[" and self.peek(1) != "]":
            self.take()
            parameters = self.parameters("]")
        nullable = False
        if self.peek() == "?":
            self.take()
            nullable = True
        rank = 0
        while self.peek() == "[" and self.peek(1) == "]":
            self.pos += 2
            rank += 1
        module = self.qualifier() if qualified else None
        return TypeNameTree(name, module, nullable, rank, parameters)

    def parameters(self, close: str) -> Tuple[TypeNameTree, ...]:
        found: List[TypeNameTree] = []
        while True:
            if self.peek() == "[":
                self.take()
                found.append(self.type_name(qualified=True))
                self.expect("]")
            else:
                found.append(self.type_name(qualified=False))
            token = self.take()
            if token == ",":
                continue
            if token == close:
                return tuple(found)
            raise SyntaxError(token)

    def qualifier(self) -> Optional[str]:
        if self.peek() == "@":
            self.take()
            module = self.take()
            if not _is_name(module):
                raise SyntaxError(module)
            return module
        if self.peek() != ",":
            return None
        self.take()
        if self.peek() is None:
            # "Money," → unqualified
            return None
        module = self.take()
        if not _is_name(module):
            raise SyntaxError(module)
        # "Money, billing, Version=1.0" → options are accepted and ignored
        while self.peek() == "," and self.peek(2) == "=":
            self.pos += 4
        return module


def parse_type_name(text: Optional[str]) -> Optional[TypeNameTree]:
    """Parse a type name; None when the text is empty or malformed."""
    if not text or not text.strip():
        return None
    tokens = tokenize(text)
    if not tokens:
        return None
    parser = _Parser(tokens)
    try:
        tree = parser.type_name(qualified=True)
    except SyntaxError:
        return None
    if parser.pos != len(tokens):
        return None
    return tree
