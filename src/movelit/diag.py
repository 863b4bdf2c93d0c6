from dataclasses import dataclass
from typing import Literal

Severity = Literal["error", "warning", "note"]

INPUT_UNAVAILABLE = "MVL-IO-0001"
MALFORMED_LITERAL = "MVL-SCAN-0101"
LABEL_COLLISION = "MVL-SYM-0201"


@dataclass(frozen=True)
class Diagnostic:
    stage: str
    filename: str
    message: str
    line: int | None = None
    column: int | None = None
    code: str | None = None
    severity: Severity = "error"

    def __str__(self) -> str:
        if self.line is None or self.column is None:
            return f"{self.filename}: {self.stage}: {self.severity}: {self.message}"
        return (
            f"{self.filename}:{self.line}:{self.column}: "
            f"{self.stage}: {self.severity}: {self.message}"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "stage": self.stage,
            "severity": self.severity,
            "filename": self.filename,
            "line": self.line,
            "column": self.column,
            "code": self.code,
            "message": self.message,
        }


class TransformError(ValueError):
    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic
