import io
import unittest

from PyPDF2 import PdfReader

from java_printer.engine import merge
from tests.helpers import make_pdf


def _sizes(data):
    reader = PdfReader(io.BytesIO(data))
    return [(float(p.mediabox.width), float(p.mediabox.height)) for p in reader.pages]


class TestPadding(unittest.TestCase):
    def test_padding_makes_count_divisible(self):
        for multiple in (1, 2, 4, 8):
            for count in range(1, 20):
                padding = merge.padding_needed(count, multiple)
                self.assertGreaterEqual(padding, 0)
                self.assertLess(padding, multiple if multiple > 1 else 1)
                self.assertEqual((count + padding) % multiple, 0)

    def test_no_padding_for_empty_project(self):
        self.assertEqual(merge.padding_needed(0, 4), 0)

    def test_insert_padding_uses_project_page_size(self):
        target = merge.new_document()
        appended = merge.append_pages(target, make_pdf(5, width=300, height=400))
        self.assertEqual(appended.page_count, 5)
        self.assertEqual(appended.page_size, (300.0, 400.0))

        added = merge.insert_padding(target, appended.page_count, appended.page_size, 4)
        self.assertEqual(added, 3)
        sizes = _sizes(merge.write_document(target))
        self.assertEqual(len(sizes), 8)
        self.assertTrue(all(size == (300.0, 400.0) for size in sizes))

    def test_insert_padding_defaults_to_a4(self):
        target = merge.new_document()
        target.add_blank_page(width=100, height=100)
        added = merge.insert_padding(target, 1, None, 2)
        self.assertEqual(added, 1)
        width, height = _sizes(merge.write_document(target))[-1]
        self.assertAlmostEqual(width, merge.A4_SIZE[0], places=1)
        self.assertAlmostEqual(height, merge.A4_SIZE[1], places=1)

    def test_append_keeps_source_order(self):
        target = merge.new_document()
        merge.append_pages(target, make_pdf(1, width=100, height=100))
        merge.append_pages(target, make_pdf(2, width=200, height=200))
        data = merge.write_document(target)
        self.assertEqual(merge.count_pages(data), 3)
        self.assertEqual([w for w, _ in _sizes(data)], [100.0, 200.0, 200.0])


if __name__ == "__main__":
    unittest.main()
