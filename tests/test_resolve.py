"""
Tests for book lookup and reading order

Tests:
- Natural filename ordering
- Finding a book by path, number, directory keyword and title
- Section order, manifest order and the flat-layout fallback
- Orphan detection and artifact lookup
"""

import os

from chapbook.config import BookConfig
from chapbook.resolve import (
    assemble_inputs,
    find_book_dir,
    natural_sort_key,
    resolve_artifact,
    section_for_path,
    unlisted_files,
)


def _rel(book, files):
    return [os.path.relpath(f, book) for f in files]


class TestNaturalSort:
    def test_numbers_sort_numerically(self):
        names = ["10-closing.md", "2-files.md", "1-intro.md"]

        assert sorted(names, key=natural_sort_key) == [
            "1-intro.md", "2-files.md", "10-closing.md",
        ]

    def test_case_insensitive(self):
        assert sorted(["b.md", "A.md"], key=natural_sort_key) == ["A.md", "b.md"]


class TestFindBookDir:
    def test_direct_path(self, sample_book, tmp_path):
        assert find_book_dir(sample_book, str(tmp_path)) == sample_book

    def test_by_number(self, sample_book, tmp_path):
        assert find_book_dir("1", str(tmp_path)) == sample_book

    def test_by_directory_keyword(self, sample_book, tmp_path):
        assert find_book_dir("TEST", str(tmp_path)) == sample_book

    def test_by_title(self, make_book, tmp_path):
        book = make_book(
            {"a.md": "# A\n"},
            yaml_text="title: Unix as IDE\nauthor: A\nprefix: u\n",
            name="2_other",
        )

        assert find_book_dir("unix", str(tmp_path)) == book

    def test_not_found(self, sample_book, tmp_path):
        assert find_book_dir("nothing-like-it", str(tmp_path)) is None

    def test_no_manuscript_dir(self, tmp_path):
        assert find_book_dir("1", str(tmp_path)) is None


class TestAssembleInputs:
    def test_section_order(self, sample_book):
        files = assemble_inputs(sample_book, BookConfig.load(sample_book))

        assert _rel(sample_book, files) == [
            os.path.join("front", "00-title.md"),
            os.path.join("intro", "01-introduction.md"),
            os.path.join("chapters", "2-files.md"),
            os.path.join("chapters", "10-editing.md"),
            os.path.join("back", "99-conclusion.md"),
        ]

    def test_default_sections_without_config(self, sample_book):
        assert len(assemble_inputs(sample_book)) == 5

    def test_chapters_only(self, sample_book):
        files = assemble_inputs(sample_book, chapters_only=True)

        assert _rel(sample_book, files) == [
            os.path.join("chapters", "2-files.md"),
            os.path.join("chapters", "10-editing.md"),
        ]

    def test_flat_layout_fallback(self, make_book):
        book = make_book({"10-end.md": "# End\n", "1-start.md": "# Start\n"})

        assert _rel(book, assemble_inputs(book)) == ["1-start.md", "10-end.md"]

    def test_manifest_order_wins(self, make_book):
        book = make_book(
            {"chapters/1-a.md": "# A\n", "chapters/2-b.md": "# B\n", "intro.md": "# I\n"},
            yaml_text=(
                "title: T\nauthor: A\nprefix: t\n"
                "chapters:\n  - chapters/2-b.md\n  - intro.md\n  - chapters/1-a.md\n"
            ),
        )
        files = assemble_inputs(book, BookConfig.load(book))

        assert _rel(book, files) == [
            os.path.join("chapters", "2-b.md"),
            "intro.md",
            os.path.join("chapters", "1-a.md"),
        ]

    def test_custom_sections(self, make_book):
        book = make_book(
            {"parts/a.md": "# A\n", "chapters/b.md": "# B\n"},
            yaml_text="title: T\nauthor: A\nprefix: t\nsections: [parts]\n",
        )
        files = assemble_inputs(book, BookConfig.load(book))

        assert _rel(book, files) == [os.path.join("parts", "a.md")]


class TestUnlistedFiles:
    def test_reports_files_left_out(self, make_book):
        book = make_book(
            {"chapters/1-a.md": "# A\n", "chapters/2-b.md": "# B\n"},
            yaml_text="title: T\nauthor: A\nprefix: t\nchapters:\n  - chapters/1-a.md\n",
        )
        config = BookConfig.load(book)
        ordered = assemble_inputs(book, config)

        orphans = unlisted_files(book, ordered, config)

        assert _rel(book, orphans) == [os.path.join("chapters", "2-b.md")]

    def test_nothing_left_out(self, sample_book):
        assert unlisted_files(sample_book, assemble_inputs(sample_book)) == []


class TestArtifactsAndSections:
    def test_book_artifact_overrides_repo(self, sample_book, tmp_path):
        (tmp_path / "artifacts").mkdir()
        (tmp_path / "artifacts" / "epub.css").write_text("repo")
        assert resolve_artifact(sample_book, "epub.css") == str(tmp_path / "artifacts" / "epub.css")

        os.makedirs(os.path.join(sample_book, "artifacts"))
        book_css = os.path.join(sample_book, "artifacts", "epub.css")
        with open(book_css, "w") as f:
            f.write("book")
        assert resolve_artifact(sample_book, "epub.css") == book_css

    def test_missing_artifact(self, sample_book):
        assert resolve_artifact(sample_book, "cover.jpg") is None
        assert resolve_artifact(sample_book, None) is None

    def test_section_for_path(self, sample_book):
        assert section_for_path(os.path.join(sample_book, "intro", "x.md"), sample_book) == "intro"
        assert section_for_path(os.path.join(sample_book, "x.md"), sample_book) == "chapters"
