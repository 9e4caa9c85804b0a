"""
Join ordered chapters into the single document pandoc converts.

Chapters link to each other the way they would on a website
(`[Editing](03-editing.md#vim)`). Once everything is one document those
links have to point at in-document anchors instead, so while joining we
rewrite every cross-chapter link we can resolve and leave the rest alone
for lint to report.
"""

import os
import re
from urllib.parse import unquote

from chapbook.chapter import heading_ids, scan_fences


# [text](target "title") and ![alt](target)
INLINE_LINK = re.compile(r"(\]\(\s*<?)([^)\s>]+)(>?(?:\s+[\"'(][^)]*)?\s*\))")
# [label]: target "title"
REF_DEFINITION = re.compile(r"^([ ]{0,3}\[[^\]]+\]:[ \t]*<?)([^\s>]+)(.*)$")
URL_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
CODE_SPAN = re.compile(r"(`+)(?:.+?)\1")


class AnchorIndex:
    """
    Every heading identifier in the book, as pandoc will assign them once
    the chapters are concatenated.

    Repeated identifiers get pandoc's "-1", "-2" suffixes in document
    order, so each chapter keeps a map from the identifier an author
    sees in the file on its own to the one the merged document ends up
    using.
    """

    def __init__(self, chapters):
        self.chapters = {}
        self.document = set()
        self._counts = {}

        for chapter in chapters:
            local = {}
            title = None
            title_line = chapter.heading[0] if chapter.heading else None
            for num, _, _, ident in heading_ids(chapter.body.lstrip("\ufeff")):
                doc_id = self._unique(ident)
                # Within a file the first heading with an id wins
                local.setdefault(ident, doc_id)
                if num == title_line:
                    title = doc_id
            # A chapter without a title heading has nothing to link to
            self.chapters[chapter.path] = {
                "chapter": title,
                "anchors": local,
            }

    def _unique(self, ident):
        if ident not in self.document:
            self.document.add(ident)
            self._counts[ident] = 0
            return ident
        n = self._counts.get(ident, 0)
        while True:
            n += 1
            candidate = f"{ident}-{n}"
            if candidate not in self.document:
                break
        self._counts[ident] = n
        self.document.add(candidate)
        return candidate

    def lookup(self, path):
        return self.chapters.get(os.path.abspath(path))

    def by_relpath(self, book_dir):
        """Entries keyed by chapter path relative to book_dir, '/'-separated."""
        return {
            os.path.relpath(path, book_dir).replace(os.sep, "/"): entry
            for path, entry in self.chapters.items()
        }


def build_anchor_index(chapters):
    return AnchorIndex(chapters)


def is_internal(target):
    """True for links meant to point inside the book."""
    if not target or URL_SCHEME.match(target) or target.startswith("//"):
        return False
    if target.startswith("#"):
        return True
    path = target.split("#", 1)[0]
    return path.lower().endswith(".md")


def resolve_link(target, chapter, index):
    """
    Map a link target to its in-document anchor.

    Returns (resolved, internal): resolved is "#id" or None when the
    target can't be found; internal is False for links that aren't
    cross-references at all (external URLs, images, other files).
    """
    if not is_internal(target):
        return None, False

    path, _, frag = target.partition("#")
    frag = unquote(frag)

    if not path:
        own = index.lookup(chapter.path)
        if own and frag in own["anchors"]:
            return f"#{own['anchors'][frag]}", True
        if frag in index.document:
            return f"#{frag}", True
        return None, True

    full = os.path.normpath(
        os.path.join(os.path.dirname(chapter.path), unquote(path))
    )
    entry = index.lookup(full)
    if entry is None:
        return None, True
    if not frag:
        if entry["chapter"] is None:
            return None, True
        return f"#{entry['chapter']}", True
    if frag in entry["anchors"]:
        return f"#{entry['anchors'][frag]}", True
    return None, True


def iter_links(chapter):
    """Yield (line_number, target) for every link outside code."""
    for num, line, in_code in scan_fences(chapter.body.split("\n")):
        if in_code:
            continue
        m = REF_DEFINITION.match(line)
        if m:
            yield num, m.group(2)
            continue
        for segment in _outside_code_spans(line):
            for link in INLINE_LINK.finditer(segment):
                yield num, link.group(2)


def _outside_code_spans(line):
    """The parts of a line that aren't inside `code`."""
    parts = []
    pos = 0
    for m in CODE_SPAN.finditer(line):
        parts.append(line[pos:m.start()])
        pos = m.end()
    parts.append(line[pos:])
    return parts


def _rewrite_line(line, rewrite):
    m = REF_DEFINITION.match(line)
    if m:
        return m.group(1) + rewrite(m.group(2)) + m.group(3)

    out = []
    pos = 0
    for span in CODE_SPAN.finditer(line):
        out.append(INLINE_LINK.sub(
            lambda l: l.group(1) + rewrite(l.group(2)) + l.group(3),
            line[pos:span.start()],
        ))
        out.append(span.group(0))
        pos = span.end()
    out.append(INLINE_LINK.sub(
        lambda l: l.group(1) + rewrite(l.group(2)) + l.group(3),
        line[pos:],
    ))
    return "".join(out)


def rewrite_links(chapter, index):
    """Chapter body with resolvable cross-chapter links made in-document."""

    def rewrite(target):
        resolved, _ = resolve_link(target, chapter, index)
        return resolved or target

    lines = []
    for _, line, in_code in scan_fences(chapter.body.split("\n")):
        lines.append(line if in_code else _rewrite_line(line, rewrite))
    return "\n".join(lines)


def concatenate(chapters):
    """
    Join chapters in ordinal order into one markdown document.

    Bodies are separated by a single blank line and the result ends with
    exactly one newline. Empty chapters contribute nothing.
    """
    ordered = sorted(chapters, key=lambda c: c.ordinal)
    index = build_anchor_index(ordered)

    parts = []
    for chapter in ordered:
        if chapter.is_empty:
            continue
        body = rewrite_links(chapter, index).lstrip("\ufeff").rstrip()
        parts.append(body)

    if not parts:
        return ""
    return "\n\n".join(parts) + "\n"


def write_merged(chapters, path):
    """Write the concatenated document to path. Returns the path."""
    text = concatenate(chapters)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path
