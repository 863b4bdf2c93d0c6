from dataclasses import dataclass
from enum import Enum, auto
from typing import NoReturn

from movelit.interner import Interner
from movelit.options import UnterminatedPolicy

# Matched as byte prefixes in this order, so "#if" also covers "#ifdef".
DIRECTIVES: tuple[bytes, ...] = (
    b"#define",
    b"#error",
    b"#warning",
    b"#undef",
    b"#ifdef",
    b"#ifndef",
    b"#if",
    b"#else",
    b"#elif",
    b"#endif",
    b"#pragma",
)

_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_CR = ord("\r")
_LF = ord("\n")


class TokenKind(Enum):
    VERBATIM = auto()
    LITERAL_REF = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: bytes
    line: int
    column: int
    source: bytes
    label: str | None = None


class ScanError(ValueError):
    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(f"{message} at {line}:{column}")
        self.line = line
        self.column = column


def scan_literal(source: bytes, start: int) -> tuple[bytes, int] | None:
    """Read a string literal interior starting just after its opening quote.

    Returns the raw interior and the index just past the closing quote, or
    None when an unescaped line terminator or the end of input comes first.
    A backslash always takes the following byte with it.
    """
    index = start
    length = len(source)
    while index < length:
        ch = source[index]
        if ch == _QUOTE:
            return source[start:index], index + 1
        if ch == _CR or ch == _LF:
            return None
        index += 2 if ch == _BACKSLASH else 1
    return None


def scan(
    source: bytes,
    interner: Interner | None = None,
    *,
    unterminated: UnterminatedPolicy = "error",
) -> list[Token]:
    return Scanner(source, interner, unterminated=unterminated).tokenize()


class Scanner:
    def __init__(
        self,
        source: bytes,
        interner: Interner | None = None,
        *,
        unterminated: UnterminatedPolicy = "error",
    ) -> None:
        if unterminated not in {"error", "verbatim"}:
            raise ValueError("Unknown unterminated literal policy")
        self._source = source
        self._length = len(source)
        self._index = 0
        self._line = 1
        self._column = 1
        self._interner = Interner() if interner is None else interner
        self._unterminated = unterminated

    @property
    def interner(self) -> Interner:
        return self._interner

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while not self._eof():
            start_line = self._line
            start_column = self._column
            region = self._maybe_read_comment()
            if region is None:
                region = self._maybe_read_directive()
            if region is not None:
                tokens.append(Token(TokenKind.VERBATIM, region, start_line, start_column, region))
                continue
            if self._peek() == b'"':
                literal = self._maybe_read_literal(start_line, start_column)
                if literal is not None:
                    tokens.append(literal)
                    continue
            byte = self._advance_to(self._index + 1)
            tokens.append(Token(TokenKind.VERBATIM, byte, start_line, start_column, byte))
        return tokens

    def _peek(self, offset: int = 0) -> bytes:
        index = self._index + offset
        return self._source[index : index + 1]

    def _eof(self) -> bool:
        return self._index >= self._length

    def _startswith(self, prefix: bytes) -> bool:
        return self._source.startswith(prefix, self._index)

    def _advance_to(self, end: int) -> bytes:
        chunk = self._source[self._index : end]
        newlines = chunk.count(b"\n")
        if newlines:
            self._line += newlines
            self._column = len(chunk) - chunk.rfind(b"\n")
        else:
            self._column += len(chunk)
        self._index += len(chunk)
        return chunk

    def _maybe_read_comment(self) -> bytes | None:
        if self._startswith(b"/*"):
            close = self._source.find(b"*/", self._index + 2)
            return self._advance_to(self._length if close < 0 else close + 2)
        if self._startswith(b"//"):
            return self._advance_to(self._line_end(self._index + 2))
        return None

    def _maybe_read_directive(self) -> bytes | None:
        for directive in DIRECTIVES:
            if self._startswith(directive):
                return self._advance_to(self._directive_end(self._index + len(directive)))
        return None

    def _line_end(self, start: int) -> int:
        newline = self._source.find(b"\n", start)
        return self._length if newline < 0 else newline + 1

    def _directive_end(self, start: int) -> int:
        index = start
        while True:
            newline = self._source.find(b"\n", index)
            if newline < 0:
                return self._length
            if not self._is_continued(newline):
                return newline + 1
            index = newline + 1

    def _is_continued(self, newline: int) -> bool:
        before = self._source[newline - 1]
        if before == _CR:
            before = self._source[newline - 2]
        return before == _BACKSLASH

    def _maybe_read_literal(self, line: int, column: int) -> Token | None:
        scanned = scan_literal(self._source, self._index + 1)
        if scanned is None:
            if self._unterminated == "error":
                self._error("Unterminated string literal", line=line, column=column)
            return None
        content, end = scanned
        label = self._interner.intern(content, line=line, column=column)
        source = self._advance_to(end)
        text = source if label is None else label.encode("ascii")
        return Token(TokenKind.LITERAL_REF, text, line, column, source, label)

    def _error(
        self, message: str, *, line: int | None = None, column: int | None = None
    ) -> NoReturn:
        raise ScanError(message, line or self._line, column or self._column)
