import io
import tempfile
import unittest
from pathlib import Path

from tests import _bootstrap  # noqa: F401
from movelit.assembler import (
    format_symbols,
    format_token,
    read_source,
    render_definition,
    render_definitions,
    render_tokens,
    restore_tokens,
    transform_path,
    transform_source,
)
from movelit.diag import INPUT_UNAVAILABLE, LABEL_COLLISION, MALFORMED_LITERAL, TransformError
from movelit.options import TransformOptions

_SAMPLE = (
    b"#include <stdio.h>\n"
    b'#define GREETING "hello there"\n'
    b"/* \"not a literal\" */\n"
    b"int main(void) {\n"
    b'    const char *msg = "Hello, \\"world\\"!\\n"; // "trailing"\n'
    b'    char *t = "ab";\n'
    b'    printf("%s", msg);\r\n'
    b'    puts("Hello, \\"world\\"!\\n");\n'
    b"}\n"
)


class RenderTests(unittest.TestCase):
    def test_render_definition(self) -> None:
        self.assertEqual(
            render_definition("STRSYM_ABCD", b"abcd"),
            b'#define STRSYM_ABCD \\\n   "abcd"\n',
        )

    def test_render_definition_keeps_escapes(self) -> None:
        self.assertEqual(
            render_definition("STRSYM_A_NB", b"a\\nb"),
            b'#define STRSYM_A_NB \\\n   "a\\nb"\n',
        )

    def test_render_definitions_order(self) -> None:
        symbols = {"STRSYM_ZZZZ": b"zzzz", "STRSYM_AAAA": b"aaaa"}
        self.assertTrue(render_definitions(symbols).startswith(b"#define STRSYM_ZZZZ"))
        self.assertTrue(
            render_definitions(symbols, order="label").startswith(b"#define STRSYM_AAAA")
        )
        self.assertEqual(render_definitions({}), b"")

    def test_format_symbols(self) -> None:
        symbols = {"STRSYM_ZZZZ": b"zzzz", "STRSYM_AAAA": b"aaaa"}
        self.assertEqual(format_symbols(symbols), ["STRSYM_ZZZZ\tzzzz", "STRSYM_AAAA\taaaa"])
        self.assertEqual(
            format_symbols(symbols, order="label"), ["STRSYM_AAAA\taaaa", "STRSYM_ZZZZ\tzzzz"]
        )


class TransformTests(unittest.TestCase):
    def test_moves_long_literal(self) -> None:
        options = TransformOptions(minimum_length=4, label_prefix="STRSYM_")
        result = transform_source(b'const char *s = "abcdefg";', options=options)
        self.assertEqual(result.symbols, {"STRSYM_ABCDEFG": b"abcdefg"})
        self.assertEqual(
            result.output,
            b'#define STRSYM_ABCDEFG \\\n   "abcdefg"\nconst char *s = STRSYM_ABCDEFG;',
        )
        self.assertEqual(result.diagnostics, ())

    def test_keeps_short_literal(self) -> None:
        result = transform_source(b'char *t = "ab";')
        self.assertEqual(result.symbols, {})
        self.assertEqual(result.output, b'char *t = "ab";')

    def test_threshold_boundary(self) -> None:
        options = TransformOptions(minimum_length=5)
        result = transform_source(b'a("abcd"); b("abcde");', options=options)
        self.assertEqual(result.symbols, {"STRSYM_ABCDE": b"abcde"})
        self.assertIn(b'a("abcd");', result.output)
        self.assertIn(b"b(STRSYM_ABCDE);", result.output)

    def test_comments_and_directives_pass_through(self) -> None:
        source = b'// "short"\n#define X "abcdef"\n/* "abcdef" */'
        result = transform_source(source)
        self.assertEqual(result.output, source)
        self.assertEqual(result.symbols, {})

    def test_sample_round_trip(self) -> None:
        result = transform_source(_SAMPLE, filename="sample.c")
        self.assertEqual(result.filename, "sample.c")
        self.assertEqual(result.source, _SAMPLE)
        self.assertEqual(restore_tokens(result.tokens, result.symbols), _SAMPLE)
        self.assertEqual(
            result.symbols,
            {"STRSYM_HELLO____WORLD____N": b'Hello, \\"world\\"!\\n'},
        )
        body = render_tokens(result.tokens)
        self.assertTrue(result.output.endswith(body))
        self.assertIn(b"const char *msg = STRSYM_HELLO____WORLD____N;", body)
        self.assertIn(b"puts(STRSYM_HELLO____WORLD____N);", body)
        self.assertIn(b'printf("%s", msg);\r\n', body)
        self.assertEqual(body.count(b"STRSYM_"), 2)

    def test_definitions_precede_body_in_insertion_order(self) -> None:
        result = transform_source(b'f("zzzz"); g("aaaa");')
        self.assertEqual(
            result.output,
            b'#define STRSYM_ZZZZ \\\n   "zzzz"\n'
            b'#define STRSYM_AAAA \\\n   "aaaa"\n'
            b"f(STRSYM_ZZZZ); g(STRSYM_AAAA);",
        )

    def test_sorted_definitions(self) -> None:
        options = TransformOptions(symbol_order="label")
        result = transform_source(b'f("zzzz"); g("aaaa");', options=options)
        self.assertTrue(result.output.startswith(b"#define STRSYM_AAAA"))

    def test_identical_input_gives_identical_output(self) -> None:
        first = transform_source(_SAMPLE)
        second = transform_source(_SAMPLE)
        self.assertEqual(first.output, second.output)

    def test_unterminated_literal_aborts(self) -> None:
        with self.assertRaises(TransformError) as ctx:
            transform_source(b'int x;\nchar *s = "abc\n";', filename="bad.c")
        diagnostic = ctx.exception.diagnostic
        self.assertEqual(diagnostic.stage, "scan")
        self.assertEqual(diagnostic.code, MALFORMED_LITERAL)
        self.assertEqual((diagnostic.line, diagnostic.column), (2, 11))
        self.assertEqual(diagnostic.message, "Unterminated string literal")
        self.assertEqual(str(ctx.exception), "bad.c:2:11: scan: error: Unterminated string literal")

    def test_unterminated_literal_verbatim(self) -> None:
        options = TransformOptions(unterminated_literal="verbatim")
        source = b'char c = \'"\';\nputs("abcdef");'
        result = transform_source(source, options=options)
        self.assertEqual(result.symbols, {"STRSYM_ABCDEF": b"abcdef"})
        self.assertEqual(restore_tokens(result.tokens, result.symbols), source)

    def test_collision_warning(self) -> None:
        result = transform_source(b'a = "a b!"; b = "a-b?";', filename="c.c")
        self.assertEqual(result.symbols, {"STRSYM_A_B_": b"a-b?"})
        self.assertTrue(result.output.endswith(b"a = STRSYM_A_B_; b = STRSYM_A_B_;"))
        self.assertEqual(len(result.diagnostics), 1)
        diagnostic = result.diagnostics[0]
        self.assertEqual(diagnostic.severity, "warning")
        self.assertEqual(diagnostic.code, LABEL_COLLISION)
        self.assertEqual(diagnostic.stage, "intern")
        self.assertEqual((diagnostic.line, diagnostic.column), (1, 17))
        self.assertIn("STRSYM_A_B_", diagnostic.message)

    def test_collision_warning_as_error(self) -> None:
        options = TransformOptions(warn_as_error=True)
        with self.assertRaises(TransformError) as ctx:
            transform_source(b'a = "a b!"; b = "a-b?";', options=options)
        self.assertEqual(ctx.exception.diagnostic.severity, "error")
        self.assertEqual(ctx.exception.diagnostic.code, LABEL_COLLISION)

    def test_collision_error_policy(self) -> None:
        options = TransformOptions(collisions="error")
        with self.assertRaises(TransformError) as ctx:
            transform_source(b'a = "a b!";\nb = "a-b?";', options=options)
        diagnostic = ctx.exception.diagnostic
        self.assertEqual(diagnostic.stage, "intern")
        self.assertEqual((diagnostic.line, diagnostic.column), (2, 5))

    def test_collision_suffix_policy(self) -> None:
        options = TransformOptions(collisions="suffix")
        source = b'a = "a b!"; b = "a-b?"; c = "a-b?";'
        result = transform_source(source, options=options)
        self.assertEqual(
            result.symbols, {"STRSYM_A_B_": b"a b!", "STRSYM_A_B__2": b"a-b?"}
        )
        self.assertEqual(restore_tokens(result.tokens, result.symbols), source)
        self.assertEqual([d.severity for d in result.diagnostics], ["note"])

    def test_suffix_note_names_generated_label(self) -> None:
        options = TransformOptions(collisions="suffix")
        source = b'a = "ab c"; b = "ab-c"; c = "ab c_2";'
        result = transform_source(source, options=options)
        self.assertTrue(result.output.endswith(b"c = STRSYM_AB_C_2_2;"))
        self.assertEqual(restore_tokens(result.tokens, result.symbols), source)
        self.assertIn(
            'Label STRSYM_AB_C_2 was generated as a suffix for "ab-c"',
            result.diagnostics[1].message,
        )
        self.assertNotIn("generated", result.diagnostics[0].message)

    def test_suffix_notes_survive_warn_as_error(self) -> None:
        options = TransformOptions(collisions="suffix", warn_as_error=True)
        result = transform_source(b'a = "a b!"; b = "a-b?";', options=options)
        self.assertEqual(len(result.symbols), 2)

    def test_format_token(self) -> None:
        result = transform_source(b'x = "abcd";')
        self.assertEqual(format_token(result.tokens[0]), "1:1\tVERBATIM\t'x'")
        self.assertEqual(format_token(result.tokens[4]), "1:5\tLITERAL_REF\tSTRSYM_ABCD")


class SourceTests(unittest.TestCase):
    def test_read_source_stdin(self) -> None:
        self.assertEqual(read_source("-", stdin=io.BytesIO(b"x")), ("<stdin>", b"x"))

    def test_transform_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "unit.c"
            path.write_bytes(b'puts("abcdef");\n')
            result = transform_path(path)
        self.assertEqual(result.filename, str(path))
        self.assertEqual(result.symbols, {"STRSYM_ABCDEF": b"abcdef"})

    def test_transform_path_missing(self) -> None:
        with self.assertRaises(TransformError) as ctx:
            transform_path("/definitely/not/here.c")
        diagnostic = ctx.exception.diagnostic
        self.assertEqual(diagnostic.stage, "io")
        self.assertEqual(diagnostic.code, INPUT_UNAVAILABLE)
        self.assertIsNone(diagnostic.line)
        self.assertIn("Cannot read input", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
