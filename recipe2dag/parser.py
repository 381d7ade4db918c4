"""Recipe source -> syntax tree.

A small scannerless recursive-descent parser. Input that stops mid-way
(an unclosed ``(``, ``[`` or ``{``, an import without a path, an assignment
without a value) is completed leniently so a recipe being typed still
compiles; anything else that does not fit the grammar raises
RecipeParseError.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .constants import DESCRIPTION_PROPERTY, MAX_NESTING_DEPTH, MAX_SOURCE_LENGTH
from .styles import add_style_property
from .syntax import (
    AliasNode,
    AssignmentNode,
    CallNode,
    ImportNode,
    LocalVarNode,
    NamedStyleNode,
    NamespaceNode,
    QualifiedVarNode,
    RecipeNode,
    StatementNode,
    StyleBindingNode,
    StyleNode,
    ValueNode,
)

IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
STYLE_KEY_RE = re.compile(r"[A-Za-z0-9_-]+")
QUOTES = "\"'"


class RecipeParseError(Exception):
    """Raised when recipe source does not follow the grammar."""


class _RecipeParser:
    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.depth = 0

    # Scanning helpers

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.source[idx] if idx < len(self.source) else ""

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _error(self, message: str) -> RecipeParseError:
        line = self.source.count("\n", 0, self.pos) + 1
        column = self.pos - self.source.rfind("\n", 0, self.pos)
        return RecipeParseError(f"{message} at line {line}, column {column}")

    def _skip_comment(self) -> bool:
        if self._peek() != "/":
            return False
        if self._peek(1) == "/":
            end = self.source.find("\n", self.pos)
            self.pos = len(self.source) if end < 0 else end
            return True
        if self._peek(1) == "*":
            end = self.source.find("*/", self.pos + 2)
            self.pos = len(self.source) if end < 0 else end + 2
            return True
        return False

    def _skip(self, chars: str) -> None:
        while not self._at_end():
            if self._peek() in chars:
                self.pos += 1
            elif not self._skip_comment():
                break

    def _skip_inline(self) -> None:
        self._skip(" \t\r")

    def _skip_space(self) -> None:
        self._skip(" \t\r\n")

    def _skip_separators(self) -> None:
        self._skip(" \t\r\n;")

    def _after_bracket(self) -> bool:
        end = self.pos
        while end > 0 and self.source[end - 1] in " \t\r":
            end -= 1
        return end > 0 and self.source[end - 1] in ")]}"

    def _ident(self) -> Optional[str]:
        m = IDENT_RE.match(self.source, self.pos)
        if not m:
            return None
        self.pos = m.end()
        return m.group(0)

    def _expect_ident(self, what: str) -> str:
        name = self._ident()
        if name is None:
            raise self._error(f"Expected {what}")
        return name

    def _qualified_name(self) -> List[str]:
        path = [self._expect_ident("a name")]
        while self._peek() == "." and IDENT_RE.match(self.source, self.pos + 1):
            self.pos += 1
            path.append(self._expect_ident("a name"))
        return path

    def _string(self) -> str:
        quote = self._peek()
        self.pos += 1
        chars: List[str] = []
        while not self._at_end():
            c = self._peek()
            if c == quote:
                self.pos += 1
                break
            if c == "\\" and self.pos + 1 < len(self.source):
                chars.append(self._peek(1))
                self.pos += 2
                continue
            chars.append(c)
            self.pos += 1
        return "".join(chars)

    # Grammar

    def statements(self, terminator: Optional[str] = None) -> List[StatementNode]:
        stmts: List[StatementNode] = []
        while True:
            self._skip_separators()
            if self._at_end() or (terminator is not None and self._peek() == terminator):
                return stmts
            stmts.append(self._statement())
            closed = self._after_bracket()
            self._skip_inline()
            c = self._peek()
            if c in ("", "\n", ";") or c == terminator:
                continue
            # A closing bracket also ends a statement
            if closed:
                continue
            raise self._error(f"Unexpected character {c!r}")

    def _statement(self) -> StatementNode:
        c = self._peek()
        if c == "#":
            self.pos += 1
            style_name = self._expect_ident("a style name")
            return NamedStyleNode(style_name, self._trailing_style() or StyleNode())
        if c == "%":
            self.pos += 1
            keyword = self._expect_ident("a style binding keyword")
            styling = self._trailing_style()
            return StyleBindingNode(keyword, styling.style_tags if styling else [])
        if c == "@":
            return self._import(None)
        if c == "[":
            return self._namespace("")

        start = self.pos
        name = self._ident()
        if name is None:
            raise self._error(f"Unexpected character {c!r}")
        self._skip_inline()
        c = self._peek()
        if c == "(":
            return self._call(name)
        if c == "[":
            return self._namespace(name)
        if c == "@":
            return self._import(name)
        self.pos = start
        if c in ("{", ",", "="):
            return self._assignment()
        return QualifiedVarNode(self._qualified_name())

    def _assignment(self) -> StatementNode:
        lhs: List[LocalVarNode] = []
        while True:
            self._skip_inline()
            var_name = self._expect_ident("a variable name")
            lhs.append(LocalVarNode(var_name, self._trailing_style()))
            self._skip_inline()
            if self._peek() != ",":
                break
            self.pos += 1

        if self._at_end():
            return AssignmentNode(lhs, None)
        if self._peek() != "=":
            raise self._error("Expected '='")
        self.pos += 1
        self._skip_inline()

        c = self._peek()
        if c in ("", "\n", ";", "]"):
            return AssignmentNode(lhs, None)
        if c == "@":
            return AssignmentNode(lhs, self._import(None))
        if c == "[":
            return AssignmentNode(lhs, self._namespace(""))

        start = self.pos
        name = self._expect_ident("a call, namespace, import or variable")
        self._skip_inline()
        c = self._peek()
        if c == "(":
            return AssignmentNode(lhs, self._call(name))
        if c == "[":
            return AssignmentNode(lhs, self._namespace(name))
        if c == "@":
            return AssignmentNode(lhs, self._import(name))

        self.pos = start
        path = self._qualified_name()
        if len(lhs) != 1:
            raise self._error("A variable can only be aliased to a single name")
        return AliasNode(lhs[0], QualifiedVarNode(path))

    def _value(self) -> ValueNode:
        start = self.pos
        name = self._expect_ident("a variable or call")
        self._skip_inline()
        if self._peek() == "(":
            return self._call(name)
        self.pos = start
        return QualifiedVarNode(self._qualified_name())

    def _arg_list(self) -> List[ValueNode]:
        # Opening "(" already consumed
        args: List[ValueNode] = []
        while True:
            self._skip_space()
            if self._at_end():
                return args
            if self._peek() == ")":
                self.pos += 1
                return args
            args.append(self._value())
            self._skip_space()
            if self._peek() == ",":
                self.pos += 1
            elif self._peek() != ")" and not self._at_end():
                raise self._error("Expected ',' or ')' in argument list")

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise self._error("Nesting too deep")

    def _call(self, name: str) -> CallNode:
        self._enter()
        self.pos += 1
        args = self._arg_list()
        self.depth -= 1
        return CallNode(name, args, self._trailing_style())

    def _namespace(self, name: str) -> NamespaceNode:
        self._enter()
        self.pos += 1
        statements = self.statements(terminator="]")
        if self._peek() == "]":
            self.pos += 1
        self._skip_inline()
        args: List[ValueNode] = []
        if self._peek() == "(":
            self.pos += 1
            args = self._arg_list()
        self.depth -= 1
        return NamespaceNode(name, statements, args, self._trailing_style())

    def _import(self, name: Optional[str]) -> ImportNode:
        self.pos += 1
        self._skip_inline()
        location = self._string() if self._peek() in QUOTES and not self._at_end() else ""
        return ImportNode(location, name)

    def _trailing_style(self) -> Optional[StyleNode]:
        self._skip_inline()
        if self._peek() != "{":
            return None
        return self._style_block()

    def _style_block(self) -> StyleNode:
        self.pos += 1
        style = StyleNode()
        while True:
            self._skip_separators()
            if self._at_end():
                return style
            c = self._peek()
            if c == "}":
                self.pos += 1
                return style
            if c == "#":
                self.pos += 1
                style.style_tags.append(self._qualified_name())
                continue
            if c in QUOTES:
                add_style_property(style.properties, DESCRIPTION_PROPERTY, self._string())
                continue
            m = STYLE_KEY_RE.match(self.source, self.pos)
            if not m:
                raise self._error(f"Unexpected character {c!r} in style")
            self.pos = m.end()
            self._skip_inline()
            if self._peek() != ":":
                raise self._error(f"Expected ':' after style property {m.group(0)!r}")
            self.pos += 1
            self._skip_inline()
            add_style_property(style.properties, m.group(0), self._style_value())

    def _style_value(self) -> str:
        if self._peek() in QUOTES and not self._at_end():
            return self._string()
        start = self.pos
        while not self._at_end():
            c = self._peek()
            if c in "\n;}" or (c == "/" and self._peek(1) in ("/", "*")):
                break
            self.pos += 1
        return self.source[start:self.pos].strip()


def parse(source: str) -> RecipeNode:
    if len(source) > MAX_SOURCE_LENGTH:
        raise RecipeParseError("Source too large")
    return RecipeNode(_RecipeParser(source).statements())


def parse_file(filename: str) -> RecipeNode:
    with open(filename, "r", encoding="utf-8") as f:
        src = f.read()
    return parse(src)
