import re
from dataclasses import dataclass

from movelit.options import (
    DEFAULT_LABEL_PREFIX,
    DEFAULT_MINIMUM_LENGTH,
    LABEL_PREFIX_RE,
    CollisionPolicy,
)

_NON_WORD_RE = re.compile(rb"[^A-Za-z0-9_]")


def derive_label(content: bytes, prefix: str = DEFAULT_LABEL_PREFIX) -> str:
    """Map raw literal bytes to a macro name.

    Escapes are not interpreted: ``\\n`` contributes a ``_`` for the backslash
    and an ``N`` for the letter. Every non-word byte, including each byte of a
    multi-byte UTF-8 sequence, becomes one ``_``.
    """
    return prefix + _NON_WORD_RE.sub(b"_", content.upper()).decode("ascii")


def quote(content: bytes) -> bytes:
    return b'"' + content + b'"'


@dataclass(frozen=True)
class Collision:
    label: str
    previous: bytes
    content: bytes
    resolved: str
    line: int | None = None
    column: int | None = None
    # The clashing label was itself produced by suffixing.
    generated: bool = False


class LabelCollisionError(ValueError):
    def __init__(
        self,
        label: str,
        previous: bytes,
        content: bytes,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(
            f"Label {label} already bound to {_display(previous)}, "
            f"cannot bind {_display(content)}"
        )
        self.label = label
        self.previous = previous
        self.content = content
        self.line = line
        self.column = column


class Interner:
    """Owns the symbol table of one transformation run.

    ``intern`` returns ``None`` for literals shorter than the minimum length
    and the label standing in for the literal otherwise. The table keeps
    insertion order; a label is inserted once and only its content changes.
    """

    def __init__(
        self,
        *,
        minimum_length: int = DEFAULT_MINIMUM_LENGTH,
        prefix: str = DEFAULT_LABEL_PREFIX,
        collisions: CollisionPolicy = "overwrite",
    ) -> None:
        if collisions not in {"overwrite", "suffix", "error"}:
            raise ValueError(f"Unknown collision policy: {collisions}")
        if LABEL_PREFIX_RE.fullmatch(prefix) is None:
            raise ValueError(f"Label prefix must start an identifier: {prefix!r}")
        self._minimum_length = minimum_length
        self._prefix = prefix
        self._policy = collisions
        self._symbols: dict[str, bytes] = {}
        self._labels: dict[bytes, str] = {}
        self._collisions: list[Collision] = []
        self._generated: set[str] = set()

    @property
    def symbols(self) -> dict[str, bytes]:
        return dict(self._symbols)

    @property
    def collisions(self) -> tuple[Collision, ...]:
        return tuple(self._collisions)

    def __len__(self) -> int:
        return len(self._symbols)

    def intern(
        self, content: bytes, *, line: int | None = None, column: int | None = None
    ) -> str | None:
        if len(content) < self._minimum_length:
            return None
        label = derive_label(content, self._prefix)
        previous = self._symbols.get(label)
        if previous is None or previous == content:
            self._bind(label, content)
            return label
        if self._policy == "error":
            raise LabelCollisionError(label, previous, content, line, column)
        if self._policy == "suffix":
            return self._intern_with_suffix(label, content, line, column)
        self._collisions.append(Collision(label, previous, content, label, line, column))
        self._bind(label, content)
        return label

    def _intern_with_suffix(
        self, label: str, content: bytes, line: int | None, column: int | None
    ) -> str:
        existing = self._labels.get(content)
        if existing is not None:
            return existing
        index = 2
        candidate = f"{label}_{index}"
        while candidate in self._symbols:
            index += 1
            candidate = f"{label}_{index}"
        self._collisions.append(
            Collision(
                label,
                self._symbols[label],
                content,
                candidate,
                line,
                column,
                label in self._generated,
            )
        )
        self._generated.add(candidate)
        self._bind(candidate, content)
        return candidate

    def _bind(self, label: str, content: bytes) -> None:
        self._symbols[label] = content
        self._labels[content] = label


def _display(content: bytes) -> str:
    return '"' + content.decode("utf-8", "backslashreplace") + '"'
