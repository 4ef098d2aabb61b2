import unittest
from dataclasses import replace

from java_printer.core.settings import DEFAULT_SETTINGS
from java_printer.engine.filters import apply_filters

PLAIN = replace(
    DEFAULT_SETTINGS,
    hide_init_components=False,
    hide_main=False,
    collapse_blank_lines=False,
    tabs_to_spaces=False,
)


def _form_source():
    lines = ["public class Form {"]
    lines += [f"    int field{n};" for n in range(2, 10)]
    lines.append("    private void initComponents() {")
    lines += [f"        add(new Label(\"{n}\"));" for n in range(11, 40)]
    lines.append("    }")
    lines.append("}")
    return "\n".join(lines)


class TestHiddenMethods(unittest.TestCase):
    def test_init_components_collapses_to_placeholder(self):
        settings = replace(PLAIN, hide_init_components=True)
        result = apply_filters(_form_source(), settings, with_line_numbers=True)

        lines = result.text.split("\n")
        self.assertEqual(lines[9], "    private void initComponents() {")
        self.assertEqual(lines[10], "        // initComponents() hidden")
        self.assertEqual(lines[11], "    }")
        self.assertEqual(lines[12], "}")
        self.assertEqual(len(lines), 13)
        self.assertEqual(result.line_numbers, list(range(1, 11)) + [None, 40, 41])
        self.assertEqual(result.max_line_number, 41)

    def test_main_body_with_braces_in_strings(self):
        source = "\n".join([
            "class App {",
            "    public static void main(String[] args) {",
            "        if (args.length > 0) {",
            "            System.out.println(\"}\");",
            "        }",
            "    }",
            "    void other() {}",
            "}",
        ])
        result = apply_filters(source, replace(PLAIN, hide_main=True), with_line_numbers=True)
        self.assertEqual(result.text.split("\n"), [
            "class App {",
            "    public static void main(String[] args) {",
            "        // main() hidden",
            "    }",
            "    void other() {}",
            "}",
        ])
        self.assertEqual(result.line_numbers, [1, 2, None, 6, 7, 8])

    def test_declaration_without_body_is_untouched(self):
        source = "interface Form {\n    private void initComponents();\n}"
        result = apply_filters(source, replace(PLAIN, hide_init_components=True))
        self.assertEqual(result.text, source)

    def test_signature_inside_comment_is_ignored(self):
        source = "class A {\n    // private void initComponents() { x }\n    int y;\n}"
        result = apply_filters(source, replace(PLAIN, hide_init_components=True))
        self.assertEqual(result.text, source)


class TestComments(unittest.TestCase):
    SOURCE = "\n".join([
        "/** Doc. */",
        "class A {",
        "    /* block */",
        "    int x = 1; // trailing",
        "    String url = \"http://example.com\";",
        "",
        "    char c = '/';",
        "}",
    ])

    def test_remove_comments_keeps_line_numbers(self):
        settings = replace(PLAIN, remove_comments=True)
        result = apply_filters(self.SOURCE, settings, with_line_numbers=True)
        self.assertEqual(result.text.split("\n"), [
            "/** Doc. */",
            "class A {",
            "    int x = 1;",
            "    String url = \"http://example.com\";",
            "",
            "    char c = '/';",
            "}",
        ])
        self.assertEqual(result.line_numbers, [1, 2, 4, 5, 6, 7, 8])

    def test_remove_javadoc_alone(self):
        result = apply_filters(self.SOURCE, replace(PLAIN, remove_javadoc=True))
        lines = result.text.split("\n")
        self.assertEqual(lines[0], "class A {")
        self.assertIn("    /* block */", lines)
        self.assertIn("    int x = 1; // trailing", lines)

    def test_multiline_block_comment_removed(self):
        source = "int a;\n/*\n * gone\n */\nint b;"
        result = apply_filters(source, replace(PLAIN, remove_comments=True), with_line_numbers=True)
        self.assertEqual(result.text, "int a;\nint b;")
        self.assertEqual(result.line_numbers, [1, 5])


class TestWhitespace(unittest.TestCase):
    def test_blank_lines_collapse_and_tabs_expand(self):
        source = "a\n\n\n\n\tb\n  \n\nc"
        settings = replace(PLAIN, collapse_blank_lines=True, tabs_to_spaces=True)
        result = apply_filters(source, settings, with_line_numbers=True)
        self.assertEqual(result.text, "a\n\n    b\n\nc")
        self.assertEqual(result.line_numbers, [1, 2, 5, 6, 8])

    def test_line_numbers_omitted_unless_requested(self):
        result = apply_filters("a\nb", DEFAULT_SETTINGS)
        self.assertIsNone(result.line_numbers)
        self.assertEqual(result.max_line_number, 2)

    def test_crlf_input(self):
        result = apply_filters("a\r\nb\r\n", PLAIN)
        self.assertEqual(result.text, "a\nb\n")


if __name__ == "__main__":
    unittest.main()
