"""
Unified command line for chapbook.

Combines building (epub, html, mobi, markdown), linting, validation and
listing the reading order into a single entry point.

Usage:
    chapbook unix --epub --mobi         Build epub + mobi
    chapbook unix --all                 Build epub, html and markdown
    chapbook lint unix                  Lint chapter sources
    chapbook lint unix --fix            Lint and auto-fix
    chapbook validate unix              Run epubcheck on existing epub
    chapbook chapters unix              Show the reading order

Requires: pandoc, PyYAML, beautifulsoup4
Optional: kindlegen or calibre (MOBI), java + epubcheck (validation)
"""

import os
import sys
import argparse
import traceback

from chapbook.config import BookConfig, ConfigError
from chapbook.chapter import ChapterError, load_chapters
from chapbook.concat import build_anchor_index
from chapbook.resolve import assemble_inputs, find_book_dir, unlisted_files
from chapbook.builders import BUILDERS, DEFAULT_FORMATS
from chapbook.lint import Linter
from chapbook.epubcheck import validate_epub


COMMANDS = ("build", "lint", "validate", "chapters")


# ── Resolve book ───────────────────────────────────────────────────────


def resolve_book(identifier, project_root=None):
    """Find book directory, load config. Exits on failure."""
    project_root = project_root or os.getcwd()
    book_dir = find_book_dir(identifier, project_root)

    if not book_dir:
        print(f"Error: Could not find book '{identifier}'")
        print(f"  Searched in: {os.path.join(project_root, 'manuscript')}")
        print("  Tip: Run from the project root, or pass a direct path.")
        sys.exit(1)

    try:
        config = BookConfig.load(book_dir)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    return book_dir, config


def load_book(book_dir, config, chapters_only=False):
    """Chapters in reading order. Exits if there are none or one is unreadable."""
    files = assemble_inputs(book_dir, config, chapters_only=chapters_only)
    if not files:
        print(f"Error: No markdown files found in {book_dir}")
        sys.exit(1)

    try:
        return load_chapters(files, book_dir)
    except ChapterError as e:
        print(f"Error: {e}")
        sys.exit(1)


def _output_dir(args):
    return args.output_dir or os.path.join(os.getcwd(), "output")


# ── Build command ──────────────────────────────────────────────────────


def cmd_build(args):
    """Build one or more output formats."""
    book_dir, config = resolve_book(args.book)

    if args.all:
        formats = list(DEFAULT_FORMATS)
    else:
        formats = [fmt for fmt in BUILDERS if getattr(args, fmt, False)]

    if not formats:
        formats = list(DEFAULT_FORMATS)

    config.summary()
    if args.chapters_only:
        print("  Mode:   chapters only (no front/back matter)")

    chapters = load_book(book_dir, config, chapters_only=args.chapters_only)

    empty = [c for c in chapters if c.is_empty]
    for chapter in empty:
        print(f"  Warning: {os.path.relpath(chapter.path, book_dir)} is empty, skipping")

    output_dir = _output_dir(args)
    os.makedirs(output_dir, exist_ok=True)
    print(f"  Output: {output_dir}")

    results = {}
    for fmt in formats:
        builder = BUILDERS[fmt](
            config=config,
            book_dir=book_dir,
            chapters=chapters,
            output_dir=output_dir,
            verbose=args.verbose,
            no_validate=args.no_validate,
            json_report=args.json_report,
            strict=args.strict,
            epub_built=results.get("epub"),
        )
        results[fmt] = builder.build()

    print(f"\n{'─' * 60}")
    failed = [fmt for fmt, ok in results.items() if not ok]
    if failed:
        print(f"  Done with errors: {', '.join(failed)} failed")
        sys.exit(1)
    print(f"  Done. {len(results)} format(s) built successfully.")


# ── Lint command ───────────────────────────────────────────────────────


def cmd_lint(args):
    """Lint chapter source files."""
    book_dir, config = resolve_book(args.book)

    color = not args.no_color and sys.stdout.isatty()

    print(f"\n  Linting: {config.title}")
    print(f"  Source:  {book_dir}")
    print(f"  Mode:    {'FIX' if args.fix else 'CHECK'}")
    print()

    files = assemble_inputs(book_dir, config, chapters_only=args.chapters)
    if not files:
        print(f"  No markdown files found in {book_dir}")
        sys.exit(1)

    orphans = []
    if config.manifest and not args.chapters:
        orphans = unlisted_files(book_dir, files, config)

    linter = Linter(
        book_dir=book_dir,
        files=files,
        fix=args.fix,
        verbose=args.verbose,
        color=color,
        orphans=orphans,
    )

    success = linter.run()
    sys.exit(0 if success else 1)


# ── Validate command ───────────────────────────────────────────────────


def cmd_validate(args):
    """Run epubcheck on an existing epub."""
    book_dir, config = resolve_book(args.book)

    epub_file = os.path.join(_output_dir(args), f"{config.prefix}.epub")

    if not os.path.exists(epub_file):
        print(f"  Error: {epub_file} not found. Build with --epub first.")
        sys.exit(1)

    print(f"\n{'─' * 60}")
    print(f"  Validating: {epub_file}")
    print(f"{'─' * 60}")

    valid = validate_epub(epub_file, verbose=True, json_report=args.json_report)
    if valid is None:
        print("  epubcheck is not available")
    sys.exit(0 if valid else 1)


# ── Chapters command ───────────────────────────────────────────────────


def cmd_chapters(args):
    """Print the reading order."""
    book_dir, config = resolve_book(args.book)
    chapters = load_book(book_dir, config)
    index = build_anchor_index(chapters)

    print(f"\n  {config.title}")
    print(f"  {'─' * 56}")
    for c in chapters:
        rel = os.path.relpath(c.path, book_dir)
        print(f"  {c.ordinal:>3}  {c.section:<9} {c.title[:32]:<32} {c.word_count:>6}w")
        if args.verbose:
            anchor = index.lookup(c.path)["chapter"]
            print(f"       {rel} " + (f"#{anchor}" if anchor else "(no title heading)"))
    print(f"  {'─' * 56}")
    print(f"  {len(chapters)} chapters, {sum(c.word_count for c in chapters)} words")


# ── Argument Parser ────────────────────────────────────────────────────


def build_parser():
    parser = argparse.ArgumentParser(
        prog="chapbook",
        description="Markdown chapters to ebook",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  %(prog)s example --epub --mobi     Build epub + mobi
  %(prog)s example --all             Build epub, html, and markdown
  %(prog)s 1 --md --chapters-only    Merged chapters for an editor
  %(prog)s lint example              Check for issues
  %(prog)s lint example --fix        Auto-fix what's fixable
  %(prog)s validate example          Run epubcheck on existing epub
  %(prog)s chapters example          Show the reading order
        """,
    )

    sub = parser.add_subparsers(dest="command")

    build_p = sub.add_parser("build", help="Build output formats (default)")
    _add_book_arg(build_p)
    _add_build_args(build_p)

    lint_p = sub.add_parser("lint", help="Lint chapter sources")
    _add_book_arg(lint_p)
    lint_p.add_argument("--fix", action="store_true", help="Auto-fix fixable issues")
    lint_p.add_argument("--chapters", action="store_true", help="chapters/ only")
    lint_p.add_argument("--verbose", "-v", action="store_true")
    lint_p.add_argument("--no-color", action="store_true", help="Plain output")

    val_p = sub.add_parser("validate", help="Run epubcheck on existing epub")
    _add_book_arg(val_p)
    val_p.add_argument("--output-dir", help="Override output directory")
    val_p.add_argument("--json-report", nargs="?", const=True, default=None)

    ch_p = sub.add_parser("chapters", help="List chapters in reading order")
    _add_book_arg(ch_p)
    ch_p.add_argument("--verbose", "-v", action="store_true")

    return parser


def _add_book_arg(parser):
    parser.add_argument("book", help="Book number, keyword, or path")


def _add_build_args(parser):
    """Add format flags and build options to a parser."""
    fmt = parser.add_argument_group("output formats")
    fmt.add_argument("--epub", action="store_true", help="Build EPUB")
    fmt.add_argument("--html", action="store_true", help="Build cleaned single-file HTML")
    fmt.add_argument("--mobi", action="store_true", help="Build MOBI (requires kindlegen or calibre)")
    fmt.add_argument("--md", action="store_true", help="Build merged Markdown")
    fmt.add_argument("--all", action="store_true", help="Build epub + html + md")

    opts = parser.add_argument_group("options")
    opts.add_argument(
        "--chapters-only", action="store_true", help="chapters/ only, no front/back matter"
    )
    opts.add_argument("--output-dir", help="Override output directory")
    opts.add_argument("--verbose", "-v", action="store_true")
    opts.add_argument(
        "--no-validate", action="store_true", help="Skip epubcheck after epub build"
    )
    opts.add_argument(
        "--strict", action="store_true", help="Fail the epub build if epubcheck reports errors"
    )
    opts.add_argument(
        "--json-report",
        nargs="?",
        const=True,
        default=None,
        help="Save epubcheck JSON report",
    )


# ── Main ───────────────────────────────────────────────────────────────


def parse_args(argv):
    parser = build_parser()

    # Allow bare "chapbook unix --epub" without the "build" subcommand
    if argv and argv[0] not in COMMANDS and not argv[0].startswith("-"):
        argv = ["build"] + list(argv)
    return parser, parser.parse_args(argv)


def run(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    parser, args = parse_args(argv)

    dispatch = {
        "build": cmd_build,
        "lint": cmd_lint,
        "validate": cmd_validate,
        "chapters": cmd_chapters,
    }

    handler = dispatch.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


def main(argv=None):
    try:
        run(argv)
    except KeyboardInterrupt:
        print("\nCancelled.")
        sys.exit(1)
    except Exception as e:
        log_path = "build_error.log"
        with open(log_path, "w") as f:
            traceback.print_exc(file=f)
        print(f"\nUnexpected error: {e}")
        print(f"Full traceback written to {log_path}")
        sys.exit(1)


if __name__ == "__main__":
    main()
