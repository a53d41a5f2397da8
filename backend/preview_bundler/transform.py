"""
Module Transform

Turns one component module into directly executable JavaScript:

- JSX elements and fragments become ``React.createElement(...)`` calls
- everything else (statements, expressions, comments) is copied as-is
- import / export-from / dynamic import specifiers are recorded so the
  bundler can relink them after resolution

The scanner understands just enough JavaScript to do this safely: string
and template literals (with nested ``${}`` code), comments, regular
expression literals and bracket balance. Unbalanced brackets, unterminated
literals and malformed JSX are reported as TransformError with a line and
column.
"""

from __future__ import annotations
import html
import json
import re
from typing import Dict, List, Optional, Set
from dataclasses import dataclass, field

import canvas_config as config
from virtual_fs import TransformError

# Tokens after which "/" starts a regex and "<" may start JSX
_EXPR_START_PUNCT = set("([{,;:=!&|?+-*%<>~^")
_EXPR_START_KEYWORDS = {
    "return", "typeof", "instanceof", "in", "of", "new", "delete", "void",
    "throw", "case", "do", "else", "yield", "await", "default",
}
_CLOSERS = {")": "(", "]": "[", "}": "{"}

# Tokens after which a "React" identifier is a declaration of it
_BINDING_TOKENS = {"import", "as", "const", "let", "var", "function", "class"}

def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$" or ord(ch) > 127


def _is_ident_part(ch: str) -> bool:
    return ch.isalnum() or ch in "_$" or ord(ch) > 127


@dataclass
class ImportRef:
    """A module specifier found in the source"""
    specifier: str
    kind: str                      # static | reexport | side_effect | dynamic
    chunk: int                     # output chunk holding the string literal
    stmt_start: Optional[int]      # chunk of the import/export keyword
    line: int


@dataclass
class TransformOutput:
    chunks: List[str]
    imports: List[ImportRef] = field(default_factory=list)
    uses_jsx: bool = False
    binds_react: bool = False

    @property
    def code(self) -> str:
        return "".join(self.chunks)

    def render(
        self,
        rewrites: Optional[Dict[int, str]] = None,
        removals: Optional[Set[int]] = None,
    ) -> str:
        """
        Produce the final code.

        Args:
            rewrites: import index -> new specifier
            removals: import indexes whose whole statement is dropped
        """
        chunks = list(self.chunks)
        for index in removals or ():
            ref = self.imports[index]
            start = ref.stmt_start if ref.stmt_start is not None else ref.chunk
            for i in range(start, ref.chunk + 1):
                chunks[i] = ""
        for index, specifier in (rewrites or {}).items():
            if removals and index in removals:
                continue
            ref = self.imports[index]
            quote = chunks[ref.chunk][:1] or '"'
            chunks[ref.chunk] = json.dumps(specifier) if quote != "'" else _single_quoted(specifier)
        return "".join(chunks)


def _single_quoted(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


class ModuleTransformer:
    """Single-use scanner over one module's source"""

    def __init__(
        self,
        source: str,
        path: str,
        pragma: str = config.JSX_PRAGMA,
        fragment: str = config.JSX_FRAGMENT,
    ):
        self.src = source
        self.path = path
        self.pragma = pragma
        self.fragment = fragment
        self.pos = 0
        self.out: List[str] = []
        self.imports: List[ImportRef] = []
        self.uses_jsx = False
        self.binds_react = False
        self.last_token: Optional[str] = None
        self.prev_token: Optional[str] = None
        self._stmt_keyword: Optional[str] = None
        self._stmt_chunk: Optional[int] = None
        self._import_clause = False

    # ============================================
    # Entry point
    # ============================================

    def transform(self) -> TransformOutput:
        self._scan_code(stop_at_brace=False)
        return TransformOutput(
            chunks=self.out,
            imports=self.imports,
            uses_jsx=self.uses_jsx,
            binds_react=self.binds_react,
        )

    # ============================================
    # Plumbing
    # ============================================

    def _emit(self, text: str) -> int:
        self.out.append(text)
        return len(self.out) - 1

    def _set_token(self, token: str) -> None:
        self.prev_token = self.last_token
        self.last_token = token

    def _error(self, message: str, pos: Optional[int] = None) -> TransformError:
        pos = self.pos if pos is None else pos
        line = self.src.count("\n", 0, pos) + 1
        column = pos - (self.src.rfind("\n", 0, pos) + 1) + 1
        return TransformError(
            f"{self.path}:{line}:{column}: {message}",
            path=self.path,
            line=line,
            column=column,
        )

    def _peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.src[i] if i < len(self.src) else ""

    def _declares_binding(self) -> bool:
        """Whether an identifier at this point names a new binding"""
        if self.last_token in _BINDING_TOKENS:
            return True
        return self._import_clause and self.last_token in ("{", ",")

    def _expr_allowed(self) -> bool:
        token = self.last_token
        if token is None:
            return True
        if token in ("str", "num", "regex", "jsx", "name", "postfix", ")", "]", "."):
            return False
        if token == "}":
            return True
        if _is_ident_start(token[0]):
            return token in _EXPR_START_KEYWORDS
        return token[-1] in _EXPR_START_PUNCT

    # ============================================
    # Code mode
    # ============================================

    def _scan_code(self, stop_at_brace: bool) -> None:
        """
        Copy JavaScript until EOF, or until the "}" closing an enclosing
        expression container when ``stop_at_brace`` is set (the "}" is
        consumed but not emitted).
        """
        src = self.src
        stack: List[str] = []
        start_pos = self.pos

        while self.pos < len(src):
            ch = src[self.pos]
            nxt = self._peek(1)

            if ch.isspace():
                end = self.pos
                while end < len(src) and src[end].isspace():
                    end += 1
                self._emit(src[self.pos:end])
                self.pos = end
                continue

            if ch == "/" and nxt == "/":
                end = src.find("\n", self.pos)
                end = len(src) if end == -1 else end
                self._emit(src[self.pos:end])
                self.pos = end
                continue

            if ch == "/" and nxt == "*":
                end = src.find("*/", self.pos + 2)
                if end == -1:
                    raise self._error("Unterminated comment")
                self._emit(src[self.pos:end + 2])
                self.pos = end + 2
                continue

            if ch in "'\"":
                self._scan_string_literal()
                continue

            if ch == "`":
                self._scan_template()
                self._set_token("str")
                continue

            if ch == "/":
                if self._expr_allowed():
                    self._scan_regex()
                    self._set_token("regex")
                else:
                    self._emit(ch)
                    self.pos += 1
                    self._set_token(ch)
                continue

            if ch == "<" and self._expr_allowed() and (nxt == ">" or (nxt and _is_ident_start(nxt))):
                self._parse_element()
                self._set_token("jsx")
                continue

            if _is_ident_start(ch):
                end = self.pos + 1
                while end < len(src) and _is_ident_part(src[end]):
                    end += 1
                word = src[self.pos:end]
                index = self._emit(word)
                self.pos = end
                if self.last_token == ".":
                    # property access: o.default, x.import
                    self._set_token("name")
                    continue
                if word in ("import", "export"):
                    self._stmt_keyword = word
                    self._stmt_chunk = index
                    self._import_clause = word == "import"
                elif word == "from":
                    self._import_clause = False
                elif word == "React" and self._declares_binding():
                    self.binds_react = True
                self._set_token(word)
                continue

            if ch.isdigit() or (ch == "." and nxt.isdigit()):
                end = self.pos + 1
                while end < len(src) and (_is_ident_part(src[end]) or src[end] == "."):
                    end += 1
                self._emit(src[self.pos:end])
                self.pos = end
                self._set_token("num")
                continue

            if ch in "([{":
                stack.append(ch)
                self._emit(ch)
                self.pos += 1
                self._set_token(ch)
                continue

            if ch in ")]}":
                if not stack:
                    if stop_at_brace and ch == "}":
                        self.pos += 1
                        return
                    raise self._error(f"Unexpected '{ch}'")
                opener = stack.pop()
                if _CLOSERS[ch] != opener:
                    raise self._error(f"Mismatched '{ch}', expected closer for '{opener}'")
                self._emit(ch)
                self.pos += 1
                self._set_token(ch)
                continue

            if ch in "+-" and nxt == ch:
                # "x++ / 2" divides, "++x" is a prefix update
                token = "postfix" if not self._expr_allowed() else ch * 2
                self._emit(ch * 2)
                self.pos += 2
                self._set_token(token)
                continue

            if ch == ";":
                self._import_clause = False
            self._emit(ch)
            self.pos += 1
            self._set_token(ch)

        if stop_at_brace:
            raise self._error("Unterminated expression, expected '}'", start_pos)
        if stack:
            raise self._error(f"Unexpected end of input, unclosed '{stack[-1]}'")

    def _scan_string_literal(self) -> None:
        start = self.pos
        quote = self.src[start]
        end = start + 1
        while True:
            if end >= len(self.src) or self.src[end] == "\n":
                raise self._error("Unterminated string literal", start)
            c = self.src[end]
            if c == "\\":
                end += 2
                continue
            end += 1
            if c == quote:
                break

        literal = self.src[start:end]
        index = self._emit(literal)
        self.pos = end
        self._record_import(literal, index, start)
        self._import_clause = False
        self._set_token("str")

    def _record_import(self, literal: str, index: int, pos: int) -> None:
        value = literal[1:-1]
        line = self.src.count("\n", 0, pos) + 1

        if self.last_token == "from" and self._stmt_chunk is not None:
            kind = "reexport" if self._stmt_keyword == "export" else "static"
            self.imports.append(ImportRef(value, kind, index, self._stmt_chunk, line))
        elif self.last_token == "import" and self._stmt_chunk is not None:
            self.imports.append(ImportRef(value, "side_effect", index, self._stmt_chunk, line))
        elif self.last_token == "(" and self.prev_token == "import":
            self.imports.append(ImportRef(value, "dynamic", index, None, line))

    def _scan_template(self) -> None:
        start = self.pos
        self._emit("`")
        self.pos += 1
        buf_start = self.pos
        while True:
            if self.pos >= len(self.src):
                raise self._error("Unterminated template literal", start)
            c = self.src[self.pos]
            if c == "\\":
                self.pos += 2
                continue
            if c == "`":
                self._emit(self.src[buf_start:self.pos + 1])
                self.pos += 1
                return
            if c == "$" and self._peek(1) == "{":
                self._emit(self.src[buf_start:self.pos + 2])
                self.pos += 2
                self._scan_nested_expression()
                self._emit("}")
                buf_start = self.pos
                continue
            self.pos += 1

    def _scan_nested_expression(self) -> None:
        saved = (self.last_token, self.prev_token)
        self.last_token = self.prev_token = None
        self._scan_code(stop_at_brace=True)
        self.last_token, self.prev_token = saved

    def _scan_regex(self) -> None:
        start = self.pos
        end = start + 1
        in_class = False
        while True:
            if end >= len(self.src) or self.src[end] == "\n":
                raise self._error("Unterminated regular expression", start)
            c = self.src[end]
            if c == "\\":
                end += 2
                continue
            end += 1
            if c == "[":
                in_class = True
            elif c == "]":
                in_class = False
            elif c == "/" and not in_class:
                break
        while end < len(self.src) and _is_ident_part(self.src[end]):
            end += 1
        self._emit(self.src[start:end])
        self.pos = end

    # ============================================
    # JSX mode
    # ============================================

    def _skip_jsx_space(self) -> None:
        """Skip whitespace and comments between JSX attributes"""
        while self.pos < len(self.src):
            if self.src[self.pos].isspace():
                self.pos += 1
            elif self.src.startswith("//", self.pos):
                end = self.src.find("\n", self.pos)
                self.pos = len(self.src) if end == -1 else end
            elif self.src.startswith("/*", self.pos):
                end = self.src.find("*/", self.pos + 2)
                if end == -1:
                    raise self._error("Unterminated comment")
                self.pos = end + 2
            else:
                return

    def _read_jsx_name(self, allow_member: bool) -> str:
        start = self.pos
        while self.pos < len(self.src):
            c = self.src[self.pos]
            if _is_ident_part(c) or c in "-:" or (allow_member and c == "."):
                self.pos += 1
            else:
                break
        if self.pos == start:
            raise self._error("Expected a JSX identifier")
        return self.src[start:self.pos]

    def _tag_expression(self, name: str) -> str:
        if "-" in name or ":" in name or (name[0].islower() and "." not in name):
            return json.dumps(name)
        return name

    def _parse_element(self) -> None:
        """Parse one JSX element at "<" and emit its createElement call"""
        self.uses_jsx = True
        open_pos = self.pos
        self.pos += 1  # "<"

        if self._peek() == ">":
            self.pos += 1
            self._emit(f"{self.pragma}({self.fragment}, null")
            self._parse_children(closing_name="", open_pos=open_pos)
            self._emit(")")
            return

        name = self._read_jsx_name(allow_member=True)
        self._emit(f"{self.pragma}({self._tag_expression(name)}, ")

        self_closing = self._parse_attributes()
        if not self_closing:
            self._parse_children(closing_name=name, open_pos=open_pos)
        self._emit(")")

    def _parse_attributes(self) -> bool:
        """Emit the props argument; returns True for a self-closing tag"""
        has_props = False

        def open_prop() -> None:
            nonlocal has_props
            self._emit(", " if has_props else "{")
            has_props = True

        while True:
            self._skip_jsx_space()
            c = self._peek()
            if not c:
                raise self._error("Unterminated JSX opening tag")

            if c == "/":
                if self._peek(1) != ">":
                    raise self._error("Expected '>' after '/' in JSX tag")
                self.pos += 2
                self._emit("}" if has_props else "null")
                return True

            if c == ">":
                self.pos += 1
                self._emit("}" if has_props else "null")
                return False

            if c == "{":
                self.pos += 1
                self._skip_jsx_space()
                if not self.src.startswith("...", self.pos):
                    raise self._error("Expected '...' in JSX spread attribute")
                self.pos += 3
                open_prop()
                self._emit("...")
                self._scan_nested_expression()
                continue

            attr_pos = self.pos
            attr = self._read_jsx_name(allow_member=False)
            key = attr if re.fullmatch(r"[A-Za-z_$][\w$]*", attr) else json.dumps(attr)
            self._skip_jsx_space()

            if self._peek() != "=":
                open_prop()
                self._emit(f"{key}: true")
                continue

            self.pos += 1
            self._skip_jsx_space()
            v = self._peek()
            if v in ("'", '"'):
                end = self.src.find(v, self.pos + 1)
                if end == -1:
                    raise self._error("Unterminated JSX attribute string", self.pos)
                value = html.unescape(self.src[self.pos + 1:end])
                self.pos = end + 1
                open_prop()
                self._emit(f"{key}: {json.dumps(value)}")
            elif v == "{":
                self.pos += 1
                if self._empty_container_end() is not None:
                    raise self._error(
                        f"JSX attribute '{attr}' must be assigned a non-empty expression", attr_pos
                    )
                open_prop()
                self._emit(f"{key}: ")
                self._scan_nested_expression()
            elif v == "<":
                open_prop()
                self._emit(f"{key}: ")
                self._parse_element()
            else:
                raise self._error(f"Invalid value for JSX attribute '{attr}'")

    def _empty_container_end(self) -> Optional[int]:
        """If the "{...}" starting at pos holds only comments/space, its end"""
        saved = self.pos
        self._skip_jsx_space()
        if self._peek() == "}":
            end = self.pos + 1
            self.pos = saved
            return end
        self.pos = saved
        return None

    def _parse_children(self, closing_name: str, open_pos: int) -> None:
        while True:
            if self.pos >= len(self.src):
                label = f"<{closing_name}>" if closing_name else "fragment"
                raise self._error(f"Unterminated JSX contents: {label} is never closed", open_pos)

            c = self.src[self.pos]

            if c == "<":
                if self._peek(1) == "/":
                    self.pos += 2
                    self._skip_jsx_space()
                    name = "" if self._peek() == ">" else self._read_jsx_name(allow_member=True)
                    self._skip_jsx_space()
                    if self._peek() != ">":
                        raise self._error("Expected '>' in JSX closing tag")
                    self.pos += 1
                    if name != closing_name:
                        expected = f"</{closing_name}>" if closing_name else "</>"
                        raise self._error(
                            f"Expected corresponding JSX closing tag {expected}, found </{name}>"
                        )
                    return
                self._emit(", ")
                self._parse_element()
                continue

            if c == "{":
                self.pos += 1
                end = self._empty_container_end()
                if end is not None:
                    self.pos = end
                    continue
                self._emit(", ")
                self._scan_nested_expression()
                continue

            end = self.pos
            while end < len(self.src) and self.src[end] not in "<{":
                if self.src[end] in "}>":
                    raise self._error(f"Unexpected token '{self.src[end]}' in JSX text", end)
                end += 1
            text = _clean_jsx_text(self.src[self.pos:end])
            self.pos = end
            if text:
                self._emit(", " + json.dumps(html.unescape(text)))


def _clean_jsx_text(text: str) -> str:
    """Collapse JSX text whitespace the way React's JSX transform does"""
    lines = re.split(r"\r\n|\n|\r", text)
    last_non_empty = 0
    for i, line in enumerate(lines):
        if re.search(r"[^ \t]", line):
            last_non_empty = i

    result = ""
    for i, line in enumerate(lines):
        trimmed = line.replace("\t", " ")
        if i != 0:
            trimmed = trimmed.lstrip(" ")
        if i != len(lines) - 1:
            trimmed = trimmed.rstrip(" ")
        if trimmed:
            if i != last_non_empty:
                trimmed += " "
            result += trimmed
    return result


def transform_module(
    source: str,
    path: str,
    pragma: str = config.JSX_PRAGMA,
    fragment: str = config.JSX_FRAGMENT,
) -> TransformOutput:
    """
    Transform one module.

    A module that uses JSX without binding ``React`` gets
    ``import React from "react";`` prepended, recorded as an import.

    Raises:
        TransformError: the source could not be scanned
    """
    output = ModuleTransformer(source, path, pragma, fragment).transform()

    if output.uses_jsx and pragma.startswith("React.") and not output.binds_react:
        shift = 4
        output.chunks[:0] = ["import", " React from ", '"react"', ";\n"]
        for ref in output.imports:
            ref.chunk += shift
            if ref.stmt_start is not None:
                ref.stmt_start += shift
        output.imports.insert(0, ImportRef("react", "static", 2, 0, 1))

    return output
