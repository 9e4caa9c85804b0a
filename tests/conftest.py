"""Pytest configuration and shared fixtures."""

import pytest


BOOK_YAML = "title: Test Book\nauthor: A. Writer\nprefix: test_book\n"

SAMPLE_CHAPTERS = {
    "front/00-title.md": "# Test Book {.unnumbered}\n\nCopyright the author.\n",
    "intro/01-introduction.md": (
        "# Introduction\n\n"
        "See [Files](../chapters/2-files.md) and "
        "[Vim](../chapters/10-editing.md#vim).\n"
    ),
    "chapters/2-files.md": "# Files\n\n## Listing\n\nUse `ls`.\n",
    "chapters/10-editing.md": (
        "# Editing\n\n"
        "## Vim\n\n"
        "Back to [listing](2-files.md#listing) or [again](#listing).\n\n"
        "## Listing\n\n"
        "Buffers.\n"
    ),
    "back/99-conclusion.md": "# Conclusion\n\nThe end.\n",
}


@pytest.fixture
def make_book(tmp_path):
    """Factory: write a book under tmp_path/manuscript/<name>, return its path."""

    def _make(files, yaml_text=BOOK_YAML, name="1_test_book"):
        book = tmp_path / "manuscript" / name
        book.mkdir(parents=True)
        (book / "book.yaml").write_text(yaml_text, encoding="utf-8")
        for rel, content in files.items():
            path = book / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return str(book)

    return _make


@pytest.fixture
def sample_book(make_book):
    """A five-chapter book spread over front/intro/chapters/back."""
    return make_book(SAMPLE_CHAPTERS)
