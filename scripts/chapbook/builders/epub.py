"""
EPUB builder.

Pipeline: concatenate chapters → pandoc → epub → epubcheck validation.
"""

from chapbook.builders.base import BaseBuilder
from chapbook.epubcheck import validate_epub


class EpubBuilder(BaseBuilder):
    format_name = "EPUB"
    extension = ".epub"

    def pandoc_args(self):
        epub = self.config.epub
        extra = [
            "--to", "epub3",
            "--epub-title-page=false",
            "-o", self.output_file,
        ]

        if epub.get("toc", True):
            extra.append("--toc")
            extra.extend(["--toc-depth", str(epub.get("toc_depth", 1))])

        css_path = self.resolve(epub.get("css"))
        if css_path:
            extra.extend(["--css", css_path])
            self.log(f"  CSS:   {css_path}")
        else:
            print("  Warning: No epub CSS found")

        cover_path = self.resolve(epub.get("cover"))
        if cover_path:
            extra.extend(["--epub-cover-image", cover_path])
            self.log(f"  Cover: {cover_path}")
        else:
            print("  Warning: No cover image found")

        return extra

    def build(self):
        self.header()

        if not self.check_tool("pandoc"):
            return False

        skip_validate = self.kwargs.get("no_validate", False) or not self.config.epub.get("validate", True)

        with self.merged_input() as merged:
            cmd = self.pandoc_cmd(self.pandoc_args())
            cmd.append(merged)
            if not self.exec_cmd(cmd, "EPUB generation"):
                return False

        print(f"  ✓ {self.output_file}")

        if not skip_validate:
            valid = validate_epub(
                self.output_file,
                verbose=self.verbose,
                json_report=self.kwargs.get("json_report"),
            )
            if valid is False and self.kwargs.get("strict"):
                return False

        return True
