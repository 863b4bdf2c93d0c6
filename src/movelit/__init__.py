import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import BinaryIO, cast

from movelit.assembler import format_symbols, format_tokens, read_source, transform_source
from movelit.diag import Diagnostic, TransformError
from movelit.options import DEFAULT_LABEL_PREFIX, DEFAULT_MINIMUM_LENGTH, DiagFormat, TransformOptions


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="movelit",
        description="Move C string literals into generated #define statements.",
    )
    parser.add_argument("input", help="path to a C source file, or - to read from stdin")
    parser.add_argument("-o", "--output", help="write the result to this file instead of stdout")
    parser.add_argument(
        "--min-length",
        dest="minimum_length",
        type=int,
        default=DEFAULT_MINIMUM_LENGTH,
        help="shortest literal that is moved (default: %(default)s)",
    )
    parser.add_argument(
        "--prefix",
        dest="label_prefix",
        default=DEFAULT_LABEL_PREFIX,
        help="prefix of generated labels (default: %(default)s)",
    )
    parser.add_argument(
        "--collisions",
        choices=("overwrite", "suffix", "error"),
        default="overwrite",
        help="what to do when two literals derive the same label",
    )
    parser.add_argument(
        "--unterminated",
        dest="unterminated_literal",
        choices=("error", "verbatim"),
        default="error",
        help="fail on an unterminated literal, or pass its quote through",
    )
    parser.add_argument(
        "--sort-symbols",
        action="store_true",
        help="emit definitions sorted by label instead of first appearance",
    )
    parser.add_argument(
        "--diag-format",
        choices=("human", "json"),
        default="human",
        help="diagnostic output format",
    )
    parser.add_argument(
        "-Werror",
        dest="warn_as_error",
        action="store_true",
        help="treat label collision warnings as errors",
    )
    parser.add_argument("--dump-tokens", action="store_true", help="print token stream")
    parser.add_argument("--dump-symbols", action="store_true", help="print symbol table")
    return parser


def _print_diagnostic(diagnostic: Diagnostic, diag_format: DiagFormat) -> None:
    if diag_format == "json":
        print(json.dumps(diagnostic.to_dict(), separators=(",", ":")), file=sys.stderr)
    else:
        print(diagnostic, file=sys.stderr)


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> int:
    parser = _build_arg_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])
    except SystemExit as error:
        return cast(int, error.code)
    try:
        options = TransformOptions(
            minimum_length=args.minimum_length,
            label_prefix=args.label_prefix,
            collisions=args.collisions,
            unterminated_literal=args.unterminated_literal,
            symbol_order="label" if args.sort_symbols else "insertion",
            diag_format=args.diag_format,
            warn_as_error=args.warn_as_error,
        )
    except ValueError as error:
        print(f"movelit: invalid option: {error}", file=sys.stderr)
        return 2
    try:
        filename, source = read_source(args.input, stdin=stdin)
    except OSError as error:
        print(f"movelit: I/O error: {error}", file=sys.stderr)
        return 1
    try:
        result = transform_source(source, filename=filename, options=options)
    except TransformError as error:
        _print_diagnostic(error.diagnostic, options.diag_format)
        return 1
    for diagnostic in result.diagnostics:
        _print_diagnostic(diagnostic, options.diag_format)
    if args.dump_tokens or args.dump_symbols:
        lines: list[str] = []
        if args.dump_symbols:
            lines.extend(format_symbols(result.symbols, order=options.symbol_order))
        if args.dump_tokens:
            lines.extend(format_tokens(result.tokens))
        payload = "".join(f"{line}\n" for line in lines).encode("utf-8")
    else:
        payload = result.output
    if args.output is not None:
        try:
            Path(args.output).write_bytes(payload)
        except OSError as error:
            print(f"movelit: I/O error: {error}", file=sys.stderr)
            return 1
        return 0
    stream = sys.stdout.buffer if stdout is None else stdout
    stream.write(payload)
    stream.flush()
    return 0
