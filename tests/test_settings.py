import json
import unittest

from java_printer.core.settings import DEFAULT_SETTINGS, OUTPUT_SINGLE, parse_settings


class TestParseSettings(unittest.TestCase):
    def test_missing_or_broken_payload_gives_defaults(self):
        for payload in (None, "", "not json", "[1, 2]", b"{oops"):
            self.assertEqual(parse_settings(payload), DEFAULT_SETTINGS)

    def test_font_size_is_clamped(self):
        self.assertEqual(parse_settings({"fontSize": 999}).font_size, 18)
        self.assertEqual(parse_settings({"fontSize": 1}).font_size, 9)
        self.assertEqual(parse_settings({"fontSize": "14"}).font_size, 14.0)
        self.assertEqual(parse_settings({"fontSize": True}).font_size, 12)
        self.assertEqual(parse_settings({"fontSize": "nan"}).font_size, 12)

    def test_line_height_and_project_level_are_clamped(self):
        settings = parse_settings({"lineHeight": 5, "projectLevel": 7})
        self.assertEqual(settings.line_height, 2)
        self.assertEqual(settings.project_level, 3)
        settings = parse_settings({"lineHeight": 0.5, "projectLevel": 0})
        self.assertEqual(settings.line_height, 1.2)
        self.assertEqual(settings.project_level, 1)
        self.assertEqual(parse_settings({"projectLevel": "2"}).project_level, 2)

    def test_page_break_multiple_must_be_allowed_value(self):
        self.assertEqual(parse_settings({"pageBreakMultiple": 4}).page_break_multiple, 4)
        self.assertEqual(parse_settings({"pageBreakMultiple": 3}).page_break_multiple, 1)
        self.assertEqual(parse_settings({"pageBreakMultiple": "8"}).page_break_multiple, 8)

    def test_file_path_requires_file_header(self):
        settings = parse_settings({"showFileHeader": False, "showFilePath": True})
        self.assertFalse(settings.show_file_header)
        self.assertFalse(settings.show_file_path)
        self.assertTrue(parse_settings({"showFilePath": True}).show_file_path)

    def test_unknown_choices_fall_back(self):
        settings = parse_settings({
            "theme": "neon",
            "fontFamily": "comic-sans",
            "highlighter": "prism",
            "outputMode": "everything",
        })
        self.assertEqual(settings.theme, DEFAULT_SETTINGS.theme)
        self.assertEqual(settings.font_family, DEFAULT_SETTINGS.font_family)
        self.assertEqual(settings.highlighter, DEFAULT_SETTINGS.highlighter)
        self.assertEqual(settings.output_mode, DEFAULT_SETTINGS.output_mode)

    def test_json_string_payload(self):
        payload = json.dumps({
            "theme": "vs",
            "fontFamily": "fira-code",
            "outputMode": OUTPUT_SINGLE,
            "hideMain": "false",
            "removeComments": True,
            "includedFiles": ["a/A.java", 3, "b/B.java"],
        })
        settings = parse_settings(payload)
        self.assertEqual(settings.theme, "vs")
        self.assertEqual(settings.font_family, "fira-code")
        self.assertEqual(settings.output_mode, OUTPUT_SINGLE)
        self.assertFalse(settings.hide_main)
        self.assertTrue(settings.remove_comments)
        self.assertEqual(settings.included_files, ("a/A.java", "b/B.java"))

    def test_huge_integers_fall_back_to_defaults(self):
        huge = "9" * 400
        settings = parse_settings("{\"fontSize\": " + huge + ", \"projectLevel\": " + huge + "}")
        self.assertEqual(settings.font_size, DEFAULT_SETTINGS.font_size)
        self.assertEqual(settings.project_level, DEFAULT_SETTINGS.project_level)
        settings = parse_settings({"lineHeight": 10 ** 400, "pageBreakMultiple": -(10 ** 400)})
        self.assertEqual(settings.line_height, DEFAULT_SETTINGS.line_height)
        self.assertEqual(settings.page_break_multiple, DEFAULT_SETTINGS.page_break_multiple)

    def test_non_boolean_flags_keep_defaults(self):
        settings = parse_settings({"hideMain": 0, "tabsToSpaces": "maybe"})
        self.assertTrue(settings.hide_main)
        self.assertTrue(settings.tabs_to_spaces)


if __name__ == "__main__":
    unittest.main()
