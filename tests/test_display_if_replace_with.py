#!/usr/bin/env python3
"""
ABOUTME: Tests for the display_*_if and replace_word_with directives
"""

import pytest

from _stamp_helpers import (
    NS,
    add_paragraph,
    add_table,
    body_texts,
    comment_on_paragraphs,
    comment_on_run,
    make_run,
    new_document,
)
from docx_stamp import DocxStamper
from docx_stamp.common import W_R, W_RPR, W_TBL, W_TR
from docx_stamp.paragraph import get_paragraph_text


def _first_run(p):
    return p.find(W_R)


class TestDisplayIf:

    def test_paragraph_removed_on_false(self):
        doc = new_document()
        add_paragraph(doc, "always")
        p = add_paragraph(doc, "only for vip")
        comment_on_paragraphs(doc, p, p, "display_paragraph_if(customer.vip)")

        DocxStamper().stamp(doc, {'customer': {'vip': False}})
        assert body_texts(doc) == ["always"]

    def test_paragraph_kept_on_true(self):
        doc = new_document()
        p = add_paragraph(doc, "only for vip")
        comment_on_paragraphs(doc, p, p, "display_paragraph_if(customer.vip)")

        DocxStamper().stamp(doc, {'customer': {'vip': True}})
        assert body_texts(doc) == ["only for vip"]

    def test_inline_directive(self):
        doc = new_document()
        add_paragraph(doc, "keep")
        add_paragraph(doc, "#{display_paragraph_if(show)}drop")

        DocxStamper().stamp(doc, {'show': False})
        assert body_texts(doc) == ["keep"]

    def test_table_row_removed(self):
        doc = new_document()
        table = add_table(doc, [["a", "1"], ["b", "2"]])
        cell_p = table.cell(1, 0).paragraphs[0]._p
        comment_on_run(doc, _first_run(cell_p), "display_table_row_if(False)")

        DocxStamper().stamp(doc, {})
        rows = list(table._tbl.iter(W_TR))
        assert len(rows) == 1
        assert body_texts(doc) == ["a", "1"]

    def test_table_removed(self):
        doc = new_document()
        add_paragraph(doc, "before")
        table = add_table(doc, [["a"]])
        cell_p = table.cell(0, 0).paragraphs[0]._p
        comment_on_run(doc, _first_run(cell_p), "display_table_if(0)")

        DocxStamper().stamp(doc, {})
        assert list(doc.element.body.iter(W_TBL)) == []
        assert body_texts(doc) == ["before"]

    def test_only_paragraph_of_cell_is_emptied(self):
        doc = new_document()
        table = add_table(doc, [["hide me", "keep"]])
        cell_p = table.cell(0, 0).paragraphs[0]._p
        comment_on_run(doc, _first_run(cell_p), "display_paragraph_if(False)")

        DocxStamper().stamp(doc, {})
        assert cell_p.getparent() is not None
        assert get_paragraph_text(cell_p) == ""
        assert body_texts(doc) == ["", "keep"]

    def test_row_request_outside_table_is_ignored(self):
        doc = new_document()
        p = add_paragraph(doc, "not in a table")
        comment_on_paragraphs(doc, p, p, "display_table_row_if(False)")

        DocxStamper().stamp(doc, {})
        assert body_texts(doc) == ["not in a table"]


class TestReplaceWordWith:

    def test_run_text_replaced_keeping_style(self):
        doc = new_document()
        word = make_run("placeholder", bold=True)
        p = add_paragraph(doc, "Dear ", word, ",")
        comment_on_run(doc, word, "replace_word_with(customer.name)")

        DocxStamper().stamp(doc, {'customer': {'name': 'Ada'}})
        assert get_paragraph_text(p) == "Dear Ada,"
        assert word.find(W_RPR).find(f'{{{NS["w"]}}}b') is not None

    def test_none_value_keeps_text(self):
        doc = new_document()
        word = make_run("placeholder")
        p = add_paragraph(doc, "x ", word)
        comment_on_run(doc, word, "replace_word_with(nothing)")

        DocxStamper().stamp(doc, {'nothing': None})
        assert get_paragraph_text(p) == "x placeholder"

    def test_paragraph_comment_leaves_runs_alone(self):
        doc = new_document()
        p1 = add_paragraph(doc, "one ", "two")
        p2 = add_paragraph(doc, "three")
        comment_on_paragraphs(doc, p1, p2, "replace_word_with('x')")

        DocxStamper().stamp(doc, {})
        assert body_texts(doc) == ["one two", "three"]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
