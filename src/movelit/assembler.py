import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import BinaryIO

from movelit.diag import (
    INPUT_UNAVAILABLE,
    LABEL_COLLISION,
    MALFORMED_LITERAL,
    Diagnostic,
    TransformError,
)
from movelit.interner import Collision, Interner, LabelCollisionError, quote
from movelit.options import SymbolOrder, TransformOptions, normalize_options
from movelit.scanner import ScanError, Token, scan

_DEFINE_TEMPLATE = b'#define %s \\\n   "%s"\n'


def _trim_location_suffix(message: str, line: int, column: int) -> str:
    return message.removesuffix(f" at {line}:{column}")


def _display(content: bytes) -> str:
    return content.decode("utf-8", "backslashreplace")


@dataclass(frozen=True)
class TransformResult:
    filename: str
    source: bytes
    tokens: list[Token]
    symbols: dict[str, bytes]
    diagnostics: tuple[Diagnostic, ...]
    output: bytes


def read_source(path: str, *, stdin: BinaryIO | None = None) -> tuple[str, bytes]:
    if path == "-":
        stream = sys.stdin.buffer if stdin is None else stdin
        return "<stdin>", stream.read()
    resolved = Path(path)
    return str(resolved), resolved.read_bytes()


def render_definition(label: str, content: bytes) -> bytes:
    return _DEFINE_TEMPLATE % (label.encode("ascii"), content)


def render_definitions(
    symbols: Mapping[str, bytes], *, order: SymbolOrder = "insertion"
) -> bytes:
    labels = sorted(symbols) if order == "label" else list(symbols)
    return b"".join(render_definition(label, symbols[label]) for label in labels)


def render_tokens(tokens: Iterable[Token]) -> bytes:
    return b"".join(token.text for token in tokens)


def restore_tokens(tokens: Iterable[Token], symbols: Mapping[str, bytes]) -> bytes:
    """Undo label substitution using the symbol table."""
    chunks: list[bytes] = []
    for token in tokens:
        if token.label is None:
            chunks.append(token.text)
        else:
            chunks.append(quote(symbols[token.label]))
    return b"".join(chunks)


def _collision_diagnostic(collision: Collision, filename: str) -> Diagnostic:
    if collision.resolved == collision.label:
        message = (
            f"Label {collision.label} redefined: "
            f'"{_display(collision.previous)}" replaced by "{_display(collision.content)}"'
        )
        severity = "warning"
    elif collision.generated:
        message = (
            f"Label {collision.label} was generated as a suffix for "
            f'"{_display(collision.previous)}", '
            f'using {collision.resolved} for "{_display(collision.content)}"'
        )
        severity = "note"
    else:
        message = (
            f'Label {collision.label} already bound to "{_display(collision.previous)}", '
            f'using {collision.resolved} for "{_display(collision.content)}"'
        )
        severity = "note"
    return Diagnostic(
        "intern",
        filename,
        message,
        collision.line,
        collision.column,
        LABEL_COLLISION,
        severity,
    )


def transform_source(
    source: bytes,
    *,
    filename: str = "<input>",
    options: TransformOptions | None = None,
) -> TransformResult:
    options = normalize_options(options)
    interner = Interner(
        minimum_length=options.minimum_length,
        prefix=options.label_prefix,
        collisions=options.collisions,
    )
    try:
        tokens = scan(source, interner, unterminated=options.unterminated_literal)
    except ScanError as error:
        message = _trim_location_suffix(str(error), error.line, error.column)
        diagnostic = Diagnostic(
            "scan", filename, message, error.line, error.column, MALFORMED_LITERAL
        )
        raise TransformError(diagnostic) from error
    except LabelCollisionError as error:
        diagnostic = Diagnostic(
            "intern", filename, str(error), error.line, error.column, LABEL_COLLISION
        )
        raise TransformError(diagnostic) from error
    diagnostics = tuple(
        _collision_diagnostic(collision, filename) for collision in interner.collisions
    )
    if options.warn_as_error:
        for diagnostic in diagnostics:
            if diagnostic.severity == "warning":
                raise TransformError(replace(diagnostic, severity="error"))
    symbols = interner.symbols
    output = render_definitions(symbols, order=options.symbol_order) + render_tokens(tokens)
    return TransformResult(filename, source, tokens, symbols, diagnostics, output)


def transform_path(
    path: str | Path, *, options: TransformOptions | None = None
) -> TransformResult:
    try:
        filename, source = read_source(str(path))
    except OSError as error:
        reason = error.strerror or str(error)
        diagnostic = Diagnostic(
            "io", str(path), f"Cannot read input: {reason}", code=INPUT_UNAVAILABLE
        )
        raise TransformError(diagnostic) from error
    return transform_source(source, filename=filename, options=options)


def format_token(token: Token) -> str:
    lexeme = token.label if token.label is not None else repr(token.text)[1:]
    return f"{token.line}:{token.column}\t{token.kind.name}\t{lexeme}"


def format_tokens(tokens: list[Token]) -> list[str]:
    return [format_token(token) for token in tokens]


def format_symbols(symbols: Mapping[str, bytes], *, order: SymbolOrder = "insertion") -> list[str]:
    labels = sorted(symbols) if order == "label" else list(symbols)
    return [f"{label}\t{_display(symbols[label])}" for label in labels]
