"""
MOBI builder.

Pipeline: EPUB (rebuilt unless this run just made it) → ebook compiler → mobi.

The compiler is Amazon's kindlegen by default. calibre's ebook-convert
is used instead when configured, or when kindlegen can't be found.
"""

import os
import shutil

from chapbook.builders.base import BaseBuilder
from chapbook.builders.epub import EpubBuilder


# kindlegen exits 1 when the mobi was built but with warnings
KINDLEGEN_WARNINGS = 1


class MobiBuilder(BaseBuilder):
    format_name = "MOBI"
    extension = ".mobi"

    @property
    def epub_file(self):
        return os.path.join(self.output_dir, f"{self.config.prefix}.epub")

    def find_compiler(self):
        """
        Returns (name, executable) for the compiler to use, or (None, None).

        KINDLEGEN in the environment wins over PATH lookup.
        """
        preferred = self.config.mobi.get("compiler", "kindlegen")

        if preferred == "kindlegen":
            env = os.environ.get("KINDLEGEN")
            if env and os.path.exists(env):
                return ("kindlegen", env)
            if shutil.which("kindlegen"):
                return ("kindlegen", "kindlegen")
            if shutil.which("ebook-convert"):
                print("  Warning: kindlegen not found, falling back to ebook-convert")
                return ("ebook-convert", "ebook-convert")
            return (None, None)

        exe = shutil.which(preferred)
        return (os.path.basename(preferred), exe) if exe else (None, None)

    def compiler_cmd(self, name, exe):
        mobi = self.config.mobi
        if name == "kindlegen":
            return [
                exe,
                self.epub_file,
                f"-{mobi.get('compression', 'c1')}",
                "-o", os.path.basename(self.output_file),
            ]
        return [exe, self.epub_file, self.output_file]

    def ensure_epub(self):
        """
        Make sure the epub matches the current chapters.

        It is reused only when this run just built it (epub_built=True).
        Anything already on disk may be stale, so it is rebuilt.
        """
        built = self.kwargs.get("epub_built")
        if built:
            self.log(f"  Using {self.epub_file} from this build")
            return True
        if built is False:
            print("  ✗ EPUB build failed, not compiling a stale epub")
            return False
        self.log("  Building the epub first")
        builder = EpubBuilder(
            config=self.config,
            book_dir=self.book_dir,
            chapters=self.chapters,
            output_dir=self.output_dir,
            verbose=self.verbose,
            no_validate=True,
        )
        return builder.build()

    def build(self):
        self.header()

        name, exe = self.find_compiler()
        if name is None:
            print("  ✗ No ebook compiler found (kindlegen or ebook-convert)")
            print("  Set KINDLEGEN=/path/to/kindlegen, or install calibre")
            return False

        if not self.ensure_epub():
            return False

        ok_codes = (0,)
        if name == "kindlegen" and self.config.mobi.get("allow_warnings", True):
            ok_codes = (0, KINDLEGEN_WARNINGS)

        self.log(f"  Compiler: {exe}")
        cmd = self.compiler_cmd(name, exe)
        if not self.exec_cmd(cmd, f"{name} compile", ok_codes=ok_codes):
            return False

        if not os.path.exists(self.output_file):
            print(f"  ✗ {name} reported success but {self.output_file} is missing")
            return False

        print(f"  ✓ {self.output_file}")
        return True
