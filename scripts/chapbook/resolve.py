"""
Book resolution, chapter ordering, and artifact lookup.

Everything that needs to find a book directory, put its chapter files
in reading order, or locate shared/per-book artifacts imports from here.
"""

import os
import re
import glob

import yaml


def natural_sort_key(s):
    """Sort strings with embedded numbers naturally (2.md before 10.md)."""
    return [
        int(text) if text.isdigit() else text.lower()
        for text in re.split(r"(\d+)", s)
    ]


def find_book_dir(identifier, project_root):
    """
    Resolve a book identifier to its manuscript directory.

    Accepts:
        - Direct path:  manuscript/1_unix_as_ide
        - Number:       1         (matches "1_..." prefix)
        - Keyword:      unix      (matches dir name or YAML title)

    Returns: absolute path to the book directory, or None.
    """
    manuscript_root = os.path.join(project_root, "manuscript")

    for candidate in [identifier, os.path.join(project_root, identifier)]:
        if os.path.isdir(candidate) and os.path.exists(
            os.path.join(candidate, "book.yaml")
        ):
            return os.path.abspath(candidate)

    if not os.path.isdir(manuscript_root):
        return None

    identifier_lower = identifier.lower()

    for entry in sorted(os.listdir(manuscript_root), key=natural_sort_key):
        book_path = os.path.join(manuscript_root, entry)
        if not os.path.isdir(book_path):
            continue

        match = re.match(r"^(\d+)_", entry)
        if match and match.group(1) == identifier:
            return os.path.abspath(book_path)

        if identifier_lower in entry.lower():
            return os.path.abspath(book_path)

        if _title_matches(book_path, identifier_lower):
            return os.path.abspath(book_path)

    return None


def _title_matches(book_path, identifier_lower):
    yaml_path = os.path.join(book_path, "book.yaml")
    if not os.path.exists(yaml_path):
        return False
    try:
        with open(yaml_path, encoding="utf-8") as f:
            cfg = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        # Broken configs are reported when the book is actually loaded
        return False
    if not isinstance(cfg, dict):
        return False
    return identifier_lower in str(cfg.get("title", "")).lower()


def get_section_files(book_dir, section):
    """Get sorted markdown files from a section subdirectory."""
    section_dir = os.path.join(book_dir, section)
    if not os.path.isdir(section_dir):
        return []
    files = glob.glob(os.path.join(section_dir, "*.md"))
    files.sort(key=lambda p: natural_sort_key(os.path.basename(p)))
    return files


def get_root_files(book_dir):
    """Markdown files directly in the book directory (flat layout)."""
    files = glob.glob(os.path.join(book_dir, "*.md"))
    files.sort(key=lambda p: natural_sort_key(os.path.basename(p)))
    return files


def _sections(config):
    if config is not None:
        return list(config.sections)
    return ["front", "intro", "chapters", "back"]


def assemble_inputs(book_dir, config=None, chapters_only=False):
    """
    Assemble chapter files in reading order.

    Order comes from the config's explicit manifest if there is one,
    otherwise from the section directories (front → intro → chapters →
    back by default), each sorted by filename. Falls back to *.md in the
    book root if no section directories hold any files.

    If chapters_only, only files in chapters/ are kept.
    """
    manifest = config.manifest if config is not None else None

    if manifest:
        files = [os.path.join(book_dir, rel) for rel in manifest]
        if chapters_only:
            files = [f for f in files if section_for_path(f, book_dir) == "chapters"]
        return files

    if chapters_only:
        files = get_section_files(book_dir, "chapters")
    else:
        files = []
        for section in _sections(config):
            files.extend(get_section_files(book_dir, section))

    if not files:
        files = get_root_files(book_dir)

    return files


def unlisted_files(book_dir, ordered, config=None):
    """Markdown files in the book that the reading order leaves out."""
    listed = {os.path.abspath(p) for p in ordered}
    candidates = get_root_files(book_dir)
    for section in _sections(config):
        candidates.extend(get_section_files(book_dir, section))
    return [p for p in candidates if os.path.abspath(p) not in listed]


def resolve_artifact(book_dir, filename):
    """
    Resolve an artifact filename to its full path.

    Search order (first match wins):
        1. book artifacts/    (per-book overrides, e.g. cover.jpg)
        2. repo artifacts/    (shared across all books, e.g. epub.css)

    Returns: absolute path or None.
    """
    if not filename:
        return None

    path = os.path.join(book_dir, "artifacts", filename)
    if os.path.exists(path):
        return os.path.abspath(path)

    # Repo-level artifacts/ (up from manuscript/<book>)
    repo_root = os.path.dirname(os.path.dirname(os.path.abspath(book_dir)))
    path = os.path.join(repo_root, "artifacts", filename)
    if os.path.exists(path):
        return os.path.abspath(path)

    return None


def section_for_path(filepath, book_dir):
    """Determine which section (front/intro/chapters/back) a file belongs to."""
    rel = os.path.relpath(filepath, book_dir)
    parts = rel.split(os.sep)
    return parts[0] if len(parts) > 1 else "chapters"
