"""
Base builder class for all output formats.

Subclasses implement `build()` and set `format_name` / `extension`.
Shared logic (merged input, pandoc invocation, tool checks, artifact
resolution) lives here.
"""

import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager

from chapbook.concat import write_merged
from chapbook.resolve import resolve_artifact


class BaseBuilder(ABC):
    """
    Abstract base for format builders.

    Subclasses must define:
        format_name:  str  human-readable name ("EPUB", "MOBI", etc.)
        extension:    str  output file extension (".epub", ".mobi", etc.)
        build():      method  the actual build logic
    """

    format_name = None
    extension = None

    def __init__(self, config, book_dir, chapters, output_dir, verbose=False, **kwargs):
        self.config = config
        self.book_dir = book_dir
        self.chapters = chapters
        self.output_dir = output_dir
        self.verbose = verbose
        self.kwargs = kwargs

    @property
    def output_file(self):
        return os.path.join(self.output_dir, f"{self.config.prefix}{self.extension}")

    # ── Logging ────────────────────────────────────────────

    def log(self, msg):
        if self.verbose:
            print(msg)

    def header(self):
        print(f"\n{'─' * 60}")
        print(f"  Building {self.format_name}: {self.config.title}")
        print(f"{'─' * 60}")

    def resolve(self, filename):
        """Resolve an artifact filename for this book."""
        return resolve_artifact(self.book_dir, filename)

    # ── Input ──────────────────────────────────────────────

    @contextmanager
    def merged_input(self):
        """
        Yield the path of a temporary file holding the concatenated book.

        The file is removed when the block exits.
        """
        tmpdir = tempfile.mkdtemp(prefix="chapbook_")
        try:
            path = os.path.join(tmpdir, f"{self.config.prefix}.md")
            write_merged(self.chapters, path)
            self.log(f"  Input: {len(self.chapters)} chapters → {path}")
            yield path
        finally:
            shutil.rmtree(tmpdir, ignore_errors=True)

    def resource_path(self):
        """Directories pandoc searches for images referenced by chapters."""
        dirs = [os.path.abspath(self.book_dir)]
        for chapter in self.chapters:
            d = os.path.dirname(chapter.path)
            if d not in dirs:
                dirs.append(d)
        return os.pathsep.join(dirs)

    # ── Pandoc invocation ──────────────────────────────────

    def pandoc_cmd(self, extra_args=None):
        """Standard pandoc arguments plus any extras."""
        cmd = ["pandoc"]
        cmd.extend(self.config.metadata_args())
        cmd.extend([
            "--top-level-division=chapter",
            "--from", self.config.from_str,
            f"--resource-path={self.resource_path()}",
        ])
        if extra_args:
            cmd.extend(extra_args)
        return cmd

    def exec_cmd(self, cmd, label="Command", ok_codes=(0,)):
        """Execute a command, handle errors consistently."""
        try:
            result = subprocess.run(
                cmd,
                capture_output=not self.verbose,
                text=True,
            )
        except FileNotFoundError:
            print(f"  ✗ {cmd[0]} not found")
            return False

        if result.returncode not in ok_codes:
            print(f"  ✗ {label} failed (exit {result.returncode})")
            output = (result.stderr or "") or (result.stdout or "")
            for line in output.strip().splitlines()[:20]:
                print(f"    {line}")
            return False
        return True

    def check_tool(self, name):
        """Check that a required external tool is on PATH."""
        if not shutil.which(name):
            print(f"  ✗ {name} not found on PATH")
            return False
        return True

    @abstractmethod
    def build(self):
        """
        Execute the build. Returns True on success, False on failure.
        """
        ...
