import re
from dataclasses import dataclass
from typing import Literal

CollisionPolicy = Literal["overwrite", "suffix", "error"]
DiagFormat = Literal["human", "json"]
SymbolOrder = Literal["insertion", "label"]
UnterminatedPolicy = Literal["error", "verbatim"]

DEFAULT_MINIMUM_LENGTH = 4
DEFAULT_LABEL_PREFIX = "STRSYM_"

LABEL_PREFIX_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class TransformOptions:
    minimum_length: int = DEFAULT_MINIMUM_LENGTH
    label_prefix: str = DEFAULT_LABEL_PREFIX
    collisions: CollisionPolicy = "overwrite"
    unterminated_literal: UnterminatedPolicy = "error"
    symbol_order: SymbolOrder = "insertion"
    diag_format: DiagFormat = "human"
    warn_as_error: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.minimum_length, bool) or not isinstance(self.minimum_length, int):
            raise ValueError(f"Minimum length must be an integer: {self.minimum_length!r}")
        if self.minimum_length < 0:
            raise ValueError(f"Minimum length must not be negative: {self.minimum_length}")
        if LABEL_PREFIX_RE.fullmatch(self.label_prefix) is None:
            raise ValueError(f"Unsupported label prefix: {self.label_prefix!r}")
        if self.collisions not in {"overwrite", "suffix", "error"}:
            raise ValueError(f"Unsupported collision policy: {self.collisions}")
        if self.unterminated_literal not in {"error", "verbatim"}:
            raise ValueError(f"Unsupported unterminated literal policy: {self.unterminated_literal}")
        if self.symbol_order not in {"insertion", "label"}:
            raise ValueError(f"Unsupported symbol order: {self.symbol_order}")
        if self.diag_format not in {"human", "json"}:
            raise ValueError(f"Unsupported diagnostic format: {self.diag_format}")


def normalize_options(options: TransformOptions | None) -> TransformOptions:
    return TransformOptions() if options is None else options
