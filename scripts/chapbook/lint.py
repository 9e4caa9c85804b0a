"""
Chapter linter.

Scans chapter sources for encoding problems, markup that won't survive
conversion, empty chapters, and cross-references that don't resolve.

Prose-only patterns skip fenced code, so shell sessions and Makefile
examples keep their tabs and spacing.
"""

import os
import re
from dataclasses import dataclass

from chapbook.chapter import ChapterError, load_chapter, scan_fences, unclosed_fence
from chapbook.concat import build_anchor_index, iter_links, resolve_link


# ── Lint Patterns ──────────────────────────────────────────────────────
#
# Each: (description, compiled regex, replacement, severity, scope)
#   replacement = None → report only (manual review)
#   replacement = str  → auto-fixable with --fix
#   scope: "text" (every line) | "prose" (outside fenced code)

ENCODING_PATTERNS = [
    ("Non-breaking space",
     re.compile(r"\u00A0"), " ", "error", "text"),
    ("Zero-width space/joiner",
     re.compile(r"[\u200B-\u200D]"), "", "error", "text"),
    ("Soft hyphen",
     re.compile(r"\u00AD"), "", "error", "text"),
    ("Directional mark (LTR/RTL)",
     re.compile(r"[\u200E\u200F]"), "", "error", "text"),
    ("Carriage return (Windows line ending)",
     re.compile(r"\r"), "", "error", "text"),
    ("Curly quote inside markup (smart extension adds these)",
     re.compile(r"[\u201C\u201D\u2018\u2019]"), None, "info", "prose"),
]

WHITESPACE_PATTERNS = [
    # Exactly two trailing spaces is a hard line break, not stray whitespace
    ("Trailing whitespace",
     re.compile(r"(?<=\S)(?! {2}$)[ \t]+$"), "", "warning", "prose"),
    ("Tab character in prose (use spaces)",
     re.compile(r"(?<=\S)\t"), " ", "warning", "prose"),
]

STRUCTURE_PATTERNS = [
    ("Missing space after heading hash",
     re.compile(r"^(#{1,6})(?=[^ #\n{!])"), r"\1 ", "error", "prose"),
    ("Trailing hash on heading",
     re.compile(r"^(#{1,6}[ \t]+.*?)[ \t]+#+[ \t]*$"), r"\1", "warning", "prose"),
    ("Fenced div missing space after :::",
     re.compile(r"^:::\{"), "::: {", "error", "prose"),
    ("Empty link target",
     re.compile(r"\]\(\s*\)"), None, "error", "prose"),
    ("Raw LaTeX block (won't render in epub/html)",
     re.compile(r"```\{=latex\}"), None, "error", "text"),
]

ALL_PATTERNS = ENCODING_PATTERNS + WHITESPACE_PATTERNS + STRUCTURE_PATTERNS

EXCESS_BLANK_LINES = re.compile(r"\n{4,}")

SEVERITIES = ("error", "warning", "info")


# ── Severity display ───────────────────────────────────────────────────

SEVERITY_COLOR = {
    "error":   "\033[31m✗\033[0m",
    "warning": "\033[33m!\033[0m",
    "info":    "\033[36m·\033[0m",
}

SEVERITY_PLAIN = {
    "error":   "[ERROR]",
    "warning": "[WARN]",
    "info":    "[INFO]",
}


@dataclass
class Finding:
    path: str
    line: int
    severity: str
    message: str
    fixable: bool = False
    fixed: bool = False


# ── Pattern checks ─────────────────────────────────────────────────────


def check_patterns(path, content, fix=False):
    """
    Run the regex patterns over one file.

    Returns (findings, new_content). new_content equals content unless
    fix is set and something was fixable.
    """
    findings = []
    lines = content.split("\n")
    in_code = [flag for _, _, flag in scan_fences(lines)]

    for description, pattern, replacement, severity, scope in ALL_PATTERNS:
        for i, line in enumerate(lines):
            if scope == "prose" and in_code[i]:
                continue
            matches = list(pattern.finditer(line))
            if not matches:
                continue

            fixed = fix and replacement is not None
            for match in matches:
                matched = match.group(0)
                display = (
                    repr(matched)
                    if len(matched) == 1 and ord(matched) > 127 or matched.isspace()
                    else f"'{matched[:30]}'"
                )
                findings.append(Finding(
                    path, i + 1, severity,
                    f"{description} ({display})" if not fixed else description,
                    fixable=replacement is not None,
                    fixed=fixed,
                ))
            if fixed:
                lines[i] = pattern.sub(replacement, line)

    return findings, "\n".join(lines)


def fix_layout(content):
    """Fixable whole-file issues: BOM, blank-line runs, final newline."""
    content = content.lstrip("\ufeff")
    content = EXCESS_BLANK_LINES.sub("\n\n\n", content)
    if content.strip():
        content = content.rstrip("\n") + "\n"
    return content


# ── Chapter checks ─────────────────────────────────────────────────────


def check_chapter(chapter):
    """Per-file structural checks: empty, heading, fences, divs, layout."""
    findings = []
    path = chapter.path
    body = chapter.body
    lines = chapter.lines

    if chapter.is_empty:
        findings.append(Finding(path, 0, "error", "Chapter file is empty"))
        return findings

    if body.startswith("\ufeff"):
        findings.append(Finding(path, 1, "error", "File starts with UTF-8 BOM", fixable=True))

    # Anything but front/back matter must open with its title heading
    if chapter.section not in ("front", "back") and chapter.heading is None:
        first = next(line for line in lines if line.strip())
        findings.append(Finding(
            path, 1, "error",
            f"Chapter does not start with a heading: '{first.strip()[:40]}'"
        ))
    elif chapter.section not in ("front", "back"):
        first_text = next(
            num for num, line in enumerate(lines, 1) if line.strip()
        )
        if chapter.heading[0] > first_text + 1:
            findings.append(Finding(
                path, first_text, "warning",
                "Text before the chapter heading will land in the previous chapter"
            ))

    opened = unclosed_fence(lines)
    if opened:
        findings.append(Finding(
            path, opened, "error",
            "Unclosed code fence (swallows every chapter after it)"
        ))

    div_markers = [
        num for num, line, in_code in scan_fences(lines)
        if not in_code and line.startswith(":::")
    ]
    if len(div_markers) % 2 != 0:
        findings.append(Finding(
            path, div_markers[-1], "error",
            f"Possibly unclosed fenced div ({len(div_markers)} ':::' markers, expected even)"
        ))

    for m in EXCESS_BLANK_LINES.finditer(body):
        findings.append(Finding(
            path, body[: m.start()].count("\n") + 2, "warning",
            "Three or more consecutive blank lines", fixable=True
        ))

    if not body.endswith("\n"):
        findings.append(Finding(
            path, len(lines), "warning",
            "File does not end with a newline", fixable=True
        ))

    return findings


def check_chapters(chapters):
    """
    Book-level checks over chapters in reading order.

    Returns a flat list of Findings: everything check_chapter reports,
    plus duplicate titles and cross-references that don't resolve.
    """
    findings = []
    titles = {}
    index = build_anchor_index(chapters)

    for chapter in chapters:
        findings.extend(check_chapter(chapter))
        if chapter.is_empty:
            continue

        key = chapter.title.lower()
        if key in titles:
            findings.append(Finding(
                chapter.path, chapter.heading[0] if chapter.heading else 1, "warning",
                f"Duplicate chapter title '{chapter.title}' (also {titles[key]})"
            ))
        else:
            titles[key] = os.path.basename(chapter.path)

        for num, target in iter_links(chapter):
            resolved, internal = resolve_link(target, chapter, index)
            if internal and resolved is None:
                findings.append(Finding(
                    chapter.path, num, "error",
                    f"Cross-reference does not resolve: '{target}'"
                ))

    return findings


# ── Linter class ───────────────────────────────────────────────────────


class Linter:
    """
    Chapter linter.

    Usage:
        linter = Linter(book_dir, files, fix=False, color=True)
        success = linter.run()
    """

    def __init__(self, book_dir, files, fix=False, verbose=False, color=True, orphans=None):
        self.book_dir = book_dir
        self.files = files
        self.fix = fix
        self.verbose = verbose
        self.orphans = orphans or []
        self.symbols = SEVERITY_COLOR if color else SEVERITY_PLAIN
        self.total_counts = {sev: 0 for sev in SEVERITIES}
        self.total_fixes = 0
        self.remaining_errors = 0
        self.files_with_issues = 0

    def run(self):
        """Lint all files. Returns True if no errors found."""
        by_file = {}
        chapters = []

        for ordinal, filepath in enumerate(self.files, 1):
            path = os.path.abspath(filepath)
            try:
                chapter = load_chapter(path, ordinal, self.book_dir)
            except ChapterError as e:
                by_file[path] = [Finding(path, 0, "error", f"Cannot read: {e}")]
                continue

            findings, chapter = self._pattern_pass(chapter)
            by_file[path] = findings
            chapters.append(chapter)

        for finding in check_chapters(chapters):
            by_file.setdefault(finding.path, []).append(finding)

        for filepath in self.files:
            self._report(os.path.abspath(filepath), by_file.get(os.path.abspath(filepath), []))

        for orphan in self.orphans:
            self.total_counts["warning"] += 1
            rel = os.path.relpath(orphan, self.book_dir)
            print(f"  {rel}")
            print(f"  {self.symbols['warning']} Not listed in book.yaml chapters (orphan)")
            print()

        self._summary()
        return self.remaining_errors == 0

    def _pattern_pass(self, chapter):
        """Regex findings for one chapter, writing fixes back if asked."""
        findings, content = check_patterns(chapter.path, chapter.body, fix=self.fix)

        if self.fix:
            content = fix_layout(content)
            if content != chapter.body:
                with open(chapter.path, "w", encoding="utf-8") as f:
                    f.write(content)
                # Re-read so headings and titles reflect the fixed text
                chapter = load_chapter(chapter.path, chapter.ordinal, self.book_dir)
        return findings, chapter

    def _report(self, path, findings):
        rel_path = os.path.relpath(path, self.book_dir)
        if not findings:
            if self.verbose:
                print(f"  {rel_path} — clean")
            return

        self.files_with_issues += 1
        print(f"  {rel_path}")
        for f in sorted(findings, key=lambda f: f.line):
            self.total_counts[f.severity] += 1
            if f.severity == "error" and not f.fixed:
                self.remaining_errors += 1
            if f.fixed:
                self.total_fixes += 1
                label = "Fixed: "
            elif f.fixable:
                label = "Fixable: "
            else:
                label = ""
            ref = f":{f.line} " if f.line > 0 else ""
            print(f"  {self.symbols[f.severity]} {ref}{label}{f.message}")
        print()

    def _summary(self):
        """Print the summary line."""
        total = sum(self.total_counts.values())

        print(f"{'─' * 50}")

        if total == 0:
            print(f"  No issues found across {len(self.files)} files.")
            return

        parts = []
        if self.total_counts["error"]:
            parts.append(f"{self.total_counts['error']} errors")
        if self.total_counts["warning"]:
            parts.append(f"{self.total_counts['warning']} warnings")
        if self.total_counts["info"]:
            parts.append(f"{self.total_counts['info']} info")

        print(f"  {', '.join(parts)} across {self.files_with_issues}/{len(self.files)} files")

        if self.fix:
            print(f"  Applied {self.total_fixes} fixes")
            remaining = total - self.total_fixes
            if remaining > 0:
                print(f"  {remaining} issues require manual review")
        elif self.total_counts["error"] or self.total_counts["warning"]:
            print("  Run with --fix to auto-correct fixable issues")
