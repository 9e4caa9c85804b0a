"""
The Chapter record and the little bit of markdown reading it needs.

A chapter is one source file: its title, its position in the book, and
its raw body. Nothing here renders markdown; pandoc does that. We only
scan enough of it to find headings, code fences and identifiers.
"""

import os
import re
from dataclasses import dataclass

from chapbook.resolve import section_for_path


class ChapterError(Exception):
    """Raised when a chapter file cannot be read."""
    pass


ATX_HEADING = re.compile(
    r"^(#{1,6})[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*(?:\{([^}]*)\})?[ \t]*$"
)
SETEXT_UNDERLINE = re.compile(r"^(=+|-+)[ \t]*$")
FENCE_OPEN = re.compile(r"^[ ]{0,3}(`{3,}|~{3,})")

# Inline formatting removed before building an identifier
_INLINE_LINK = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_INLINE_REF = re.compile(r"!?\[([^\]]*)\]\[[^\]]*\]")
_FOOTNOTE = re.compile(r"\[\^[^\]]*\]")
# The smart extension turns these into dashes and an ellipsis, which
# identifiers then drop as punctuation
_SMART_PUNCT = re.compile(r"---|--|\.\.\.")


def scan_fences(lines):
    """
    Yield (line_number, line, in_code) for each line.

    Fence lines themselves count as code. A fence closes on a line of the
    same character at least as long as the opener.
    """
    fence = None
    for num, line in enumerate(lines, 1):
        if fence is None:
            m = FENCE_OPEN.match(line)
            if m:
                fence = m.group(1)
                yield num, line, True
                continue
            yield num, line, False
        else:
            stripped = line.strip()
            if (
                stripped
                and set(stripped) == {fence[0]}
                and len(stripped) >= len(fence)
            ):
                fence = None
            yield num, line, True


def unclosed_fence(lines):
    """Line number of a code fence left open at end of file, or None."""
    fence = None
    opened_at = None
    for num, line in enumerate(lines, 1):
        if fence is None:
            m = FENCE_OPEN.match(line)
            if m:
                fence, opened_at = m.group(1), num
        else:
            stripped = line.strip()
            if stripped and set(stripped) == {fence[0]} and len(stripped) >= len(fence):
                fence = None
    return opened_at if fence is not None else None


def strip_inline(text):
    """Reduce inline markdown to its plain text."""
    text = _FOOTNOTE.sub("", text)
    text = _INLINE_LINK.sub(r"\1", text)
    text = _INLINE_REF.sub(r"\1", text)
    text = re.sub(r"<[^>]+>", "", text)
    text = text.replace("`", "").replace("*", "")
    text = re.sub(r"(?<!\w)_(.+?)_(?!\w)", r"\1", text)
    return text.strip()


def slugify(text):
    """Identifier pandoc's auto_identifiers extension gives a heading."""
    text = strip_inline(text)
    text = _SMART_PUNCT.sub("", text)
    kept = "".join(
        c for c in text if c.isalnum() or c in "_-." or c.isspace()
    )
    ident = re.sub(r"\s+", "-", kept.strip()).lower()
    while ident and not ident[0].isalpha():
        ident = ident[1:]
    return ident or "section"


def _explicit_id(attrs):
    if not attrs:
        return None
    for token in attrs.split():
        if token.startswith("#") and len(token) > 1:
            return token[1:]
    return None


def heading_ids(body):
    """
    List (line_number, level, text, identifier) for every heading
    outside fenced code. Identifiers are not yet de-duplicated.
    """
    lines = body.split("\n")
    headings = []
    prev = None
    for num, line, in_code in scan_fences(lines):
        if in_code:
            prev = None
            continue
        line = line.rstrip("\r")

        m = ATX_HEADING.match(line)
        if m:
            text = m.group(2).strip()
            ident = _explicit_id(m.group(3)) or slugify(text)
            headings.append((num, len(m.group(1)), text, ident))
            prev = None
            continue

        u = SETEXT_UNDERLINE.match(line)
        if u and prev is not None and prev[1].strip() and not prev[1].startswith(" " * 4):
            text = prev[1].strip()
            attr = re.search(r"\{([^}]*)\}\s*$", text)
            if attr:
                text = text[: attr.start()].strip()
            ident = _explicit_id(attr.group(1) if attr else None) or slugify(text)
            level = 1 if u.group(1).startswith("=") else 2
            headings.append((prev[0], level, text, ident))
            prev = None
            continue

        prev = (num, line) if line.strip() and not line.lstrip().startswith(("-", "*", ">")) else None
    return headings


def title_from_filename(path):
    """'03-editing_text.md' → 'Editing Text'."""
    stem = os.path.splitext(os.path.basename(path))[0]
    stem = re.sub(r"^[\d\s._-]+", "", stem)
    words = re.split(r"[-_\s]+", stem)
    return " ".join(w.capitalize() for w in words if w) or stem


@dataclass(frozen=True)
class Chapter:
    """One ordered unit of prose making up part of the book."""

    title: str
    ordinal: int
    body: str
    path: str
    section: str = "chapters"
    heading: tuple = None

    @property
    def filename(self):
        return os.path.basename(self.path)

    @property
    def anchor(self):
        """
        Identifier of the chapter's title heading as written in the file,
        or None for a chapter without one. The merged document may rename
        it; concat.AnchorIndex has the final id.
        """
        return self.heading[3] if self.heading else None

    @property
    def is_empty(self):
        return not self.body.replace("\ufeff", "").strip()

    @property
    def word_count(self):
        return len(self.body.split())

    @property
    def lines(self):
        return self.body.split("\n")


def load_chapter(path, ordinal, book_dir):
    """Read one chapter file. Raises ChapterError if it can't be decoded."""
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            body = f.read()
    except UnicodeDecodeError as e:
        raise ChapterError(f"{path}: not valid UTF-8 ({e.reason} at byte {e.start})")
    except OSError as e:
        raise ChapterError(f"{path}: {e.strerror}")

    headings = [h for h in heading_ids(body.lstrip("\ufeff")) if h[1] <= 2]
    first = headings[0] if headings else None
    title = strip_inline(first[2]) if first else title_from_filename(path)

    return Chapter(
        title=title,
        ordinal=ordinal,
        body=body,
        path=os.path.abspath(path),
        section=section_for_path(path, book_dir),
        heading=first,
    )


def load_chapters(paths, book_dir):
    """Load chapters in the given order, numbering them from 1."""
    return [load_chapter(p, i, book_dir) for i, p in enumerate(paths, 1)]
