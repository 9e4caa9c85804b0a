"""
Tests for the Chapter record and heading scanning

Tests:
- pandoc-compatible heading identifiers
- ATX and setext headings, explicit ids, headings inside code
- Loading chapters: titles, ordinals, sections, encoding errors
"""

import os
from dataclasses import FrozenInstanceError

import pytest

from chapbook.chapter import (
    ChapterError,
    heading_ids,
    load_chapter,
    load_chapters,
    scan_fences,
    slugify,
    title_from_filename,
    unclosed_fence,
)


class TestSlugify:
    @pytest.mark.parametrize("text, expected", [
        ("Unix as IDE: Introduction", "unix-as-ide-introduction"),
        ("Hello, World!", "hello-world"),
        ("2. Files", "files"),
        ("`grep` and *friends*", "grep-and-friends"),
        ("[Vim](http://vim.org) tips", "vim-tips"),
        ("snake_case stays", "snake_case-stays"),
        ("!!!", "section"),
        ("Build -- and link", "build-and-link"),
        ("Before---after", "beforeafter"),
        ("Wait...", "wait"),
        ("make(1) and ... friends", "make1-and-friends"),
    ])
    def test_matches_pandoc(self, text, expected):
        assert slugify(text) == expected


class TestHeadings:
    def test_atx_levels_and_ids(self):
        body = "# Files\n\nText\n\n## Listing Files\n"

        assert heading_ids(body) == [
            (1, 1, "Files", "files"),
            (5, 2, "Listing Files", "listing-files"),
        ]

    def test_explicit_id_and_closing_hashes(self):
        body = "# Files {#file-handling .unnumbered}\n\n## Search ##\n"

        ids = [h[3] for h in heading_ids(body)]

        assert ids == ["file-handling", "search"]

    def test_setext(self):
        body = "Editing\n=======\n\nFilters\n-------\n"

        assert heading_ids(body) == [
            (1, 1, "Editing", "editing"),
            (4, 2, "Filters", "filters"),
        ]

    def test_horizontal_rule_is_not_heading(self):
        assert heading_ids("# A\n\n---\n\ntext\n") == [(1, 1, "A", "a")]

    def test_ignores_code(self):
        body = "# Real\n\n```bash\n# not a heading\n```\n"

        assert [h[2] for h in heading_ids(body)] == ["Real"]


class TestFences:
    def test_scan_marks_code_lines(self):
        lines = ["text", "~~~", "code", "~~~", "more"]

        flags = [in_code for _, _, in_code in scan_fences(lines)]

        assert flags == [False, True, True, True, False]

    def test_longer_fence_needs_longer_close(self):
        lines = ["````", "```", "still code", "````", "out"]

        assert [f for _, _, f in scan_fences(lines)][-1] is False
        assert unclosed_fence(lines) is None

    def test_unclosed(self):
        assert unclosed_fence(["# T", "", "```", "code", ""]) == 3


class TestLoadChapter:
    def test_title_and_section(self, sample_book):
        path = os.path.join(sample_book, "intro", "01-introduction.md")

        chapter = load_chapter(path, 2, sample_book)

        assert chapter.title == "Introduction"
        assert chapter.ordinal == 2
        assert chapter.section == "intro"
        assert chapter.anchor == "introduction"
        assert chapter.filename == "01-introduction.md"
        assert not chapter.is_empty

    def test_title_from_filename_without_heading(self, make_book):
        book = make_book({"03-editing_text.md": "Just prose.\n"})

        chapter = load_chapter(os.path.join(book, "03-editing_text.md"), 1, book)

        assert chapter.title == "Editing Text"
        assert chapter.heading is None
        assert chapter.anchor is None

    def test_bom_does_not_hide_heading(self, make_book):
        book = make_book({"a.md": "\ufeff# Files\n"})

        assert load_chapter(os.path.join(book, "a.md"), 1, book).title == "Files"

    def test_empty_and_word_count(self, make_book):
        book = make_book({"empty.md": "\n  \n", "words.md": "# One two\n\nthree four\n"})

        empty = load_chapter(os.path.join(book, "empty.md"), 1, book)
        words = load_chapter(os.path.join(book, "words.md"), 2, book)

        assert empty.is_empty
        assert words.word_count == 5

    def test_keeps_carriage_returns(self, make_book):
        book = make_book({"crlf.md": b"# Files\r\n\r\nText\r\n"})

        chapter = load_chapter(os.path.join(book, "crlf.md"), 1, book)

        assert "\r\n" in chapter.body
        assert chapter.title == "Files"

    def test_invalid_utf8(self, make_book):
        book = make_book({"bad.md": b"# Bad \xff\xfe\n"})

        with pytest.raises(ChapterError, match="not valid UTF-8"):
            load_chapter(os.path.join(book, "bad.md"), 1, book)

    def test_chapters_are_immutable(self, sample_book):
        chapter = load_chapter(os.path.join(sample_book, "chapters", "2-files.md"), 1, sample_book)

        with pytest.raises(FrozenInstanceError):
            chapter.title = "Other"

    def test_load_chapters_numbers_from_one(self, sample_book):
        paths = [
            os.path.join(sample_book, "chapters", "2-files.md"),
            os.path.join(sample_book, "chapters", "10-editing.md"),
        ]

        chapters = load_chapters(paths, sample_book)

        assert [(c.ordinal, c.title) for c in chapters] == [(1, "Files"), (2, "Editing")]


def test_title_from_filename():
    assert title_from_filename("/x/07-the_end.md") == "The End"
    assert title_from_filename("conclusion.md") == "Conclusion"
