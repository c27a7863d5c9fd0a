#!/usr/bin/env python3
"""
ABOUTME: Unit tests for comment binding, comment ranges and the comment store
"""

import pytest
from lxml import etree

from _stamp_helpers import (
    NSMAP,
    add_comment,
    add_paragraph,
    add_table,
    comment_ids_in_body,
    comment_ids_in_part,
    comment_on_paragraphs,
    comment_on_run,
    make_run,
    new_document,
)
from docx_stamp.comments import (
    CommentStore,
    RangeExtent,
    comment_around_run,
    comment_for_paragraph,
    elements_inside_comment,
    paragraphs_inside_comment,
)
from docx_stamp.common import W_COMMENT_RANGE_END, W_ID, W_R
from docx_stamp.paragraph import get_paragraph_text


class TestCommentBinding:

    def test_run_wrapped_by_comment(self):
        doc = new_document()
        run = make_run("word")
        p = add_paragraph(doc, "before ", run, " after")
        cid = comment_on_run(doc, run, "replace_word_with('x')")

        assert comment_around_run(run) == cid
        others = [r for r in p if r.tag == W_R and r is not run]
        assert all(comment_around_run(r) is None for r in others)

    def test_run_comment_is_not_a_paragraph_comment(self):
        doc = new_document()
        run = make_run("word")
        p = add_paragraph(doc, "a ", run)
        comment_on_run(doc, run, "x")
        assert comment_for_paragraph(p) is None

    def test_paragraph_comment_found_next_to_run_comment(self):
        doc = new_document()
        run = make_run("word")
        p1 = add_paragraph(doc, run, " tail")
        p2 = add_paragraph(doc, "second")
        run_cid = comment_on_run(doc, run, "run directive")
        para_cid = comment_on_paragraphs(doc, p1, p2, "paragraph directive")

        assert comment_around_run(run) == run_cid
        assert comment_for_paragraph(p1) == para_cid
        assert comment_for_paragraph(p2) is None


class TestCommentRanges:

    def test_bounded_range_over_paragraphs(self):
        doc = new_document()
        p1 = add_paragraph(doc, "one")
        p2 = add_paragraph(doc, "two")
        p3 = add_paragraph(doc, "three")
        cid = comment_on_paragraphs(doc, p1, p2, "repeat_paragraph(items)")

        found = elements_inside_comment(p1, cid)
        assert found.extent is RangeExtent.BOUNDED
        assert found.bounded
        assert found.elements == [p1, p2]
        assert p3 not in found.paragraphs

    def test_single_paragraph_range(self):
        doc = new_document()
        p1 = add_paragraph(doc, "one", "two")
        add_paragraph(doc, "next")
        cid = comment_on_paragraphs(doc, p1, p1, "x")

        found = paragraphs_inside_comment(p1)
        assert found.comment_id == cid
        assert found.paragraphs == [p1]

    def test_end_marker_between_paragraphs(self):
        doc = new_document()
        p1 = add_paragraph(doc, "one")
        p2 = add_paragraph(doc, "two")
        add_paragraph(doc, "three")
        cid = comment_on_paragraphs(doc, p1, p1, "x", end_marker=False)
        end = etree.Element(W_COMMENT_RANGE_END, nsmap=NSMAP)
        end.set(W_ID, cid)
        p2.addnext(end)

        found = elements_inside_comment(p1, cid)
        assert found.bounded
        assert found.elements == [p1, p2]

    def test_missing_end_marker_runs_to_container_end(self):
        doc = new_document()
        p1 = add_paragraph(doc, "one")
        p2 = add_paragraph(doc, "two")
        comment_on_paragraphs(doc, p1, p1, "x", end_marker=False)

        found = paragraphs_inside_comment(p1)
        assert found.extent is RangeExtent.UNBOUNDED_TO_CONTAINER_END
        assert found.paragraphs == [p1, p2]

    def test_unbounded_range_stays_inside_table_cell(self):
        doc = new_document()
        table = add_table(doc, [["cell"]])
        cell = table.cell(0, 0)
        cell.add_paragraph("second in cell")
        add_paragraph(doc, "after table")
        first = cell.paragraphs[0]._p
        comment_on_paragraphs(doc, first, first, "x", end_marker=False)

        found = paragraphs_inside_comment(first)
        assert found.extent is RangeExtent.UNBOUNDED_TO_CONTAINER_END
        assert [get_paragraph_text(p) for p in found.paragraphs] == ['cell', 'second in cell']


class TestCommentStore:

    def test_loads_comment_text(self):
        doc = new_document()
        p = add_paragraph(doc, "text")
        cid = comment_on_paragraphs(doc, p, p, "line one\nline two")

        store = CommentStore(doc)
        assert len(store) == 1
        comment = store.lookup(cid)
        assert comment.text == "line one\nline two"
        assert store.lookup(None) is None

    def test_remove_makes_comment_unavailable(self):
        doc = new_document()
        p = add_paragraph(doc, "text")
        cid = comment_on_paragraphs(doc, p, p, "x")

        store = CommentStore(doc)
        store.remove(cid)
        assert store.lookup(cid) is None
        assert store.pending_ids() == []

    def test_delete_removes_markers_reference_and_comment(self):
        doc = new_document()
        run = make_run("word")
        add_paragraph(doc, run)
        cid = comment_on_run(doc, run, "x")
        keep_id = add_comment(doc, "unrelated")

        store = CommentStore(doc)
        store.delete(store.lookup(cid))
        store.save()

        assert comment_ids_in_body(doc) == set()
        assert comment_ids_in_part(doc) == {keep_id}
        assert run.getparent() is not None

    def test_document_without_comments(self):
        doc = new_document()
        add_paragraph(doc, "text")
        store = CommentStore(doc)
        assert len(store) == 0
        store.save()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
