"""
HTML builder.

Pipeline: concatenate chapters → pandoc → standalone HTML5 → htmlclean.

The cleaned single-file HTML is what the ebook compiler reads best, and
is handy on its own for proofreading in a browser.
"""

from chapbook.builders.base import BaseBuilder
from chapbook.concat import build_anchor_index
from chapbook.htmlclean import clean_html_file


class HtmlBuilder(BaseBuilder):
    format_name = "HTML"
    extension = ".html"

    def pandoc_args(self):
        html = self.config.html
        extra = [
            "--to", "html5",
            "--standalone",
            "--section-divs",
            "-o", self.output_file,
        ]

        if html.get("toc", True):
            extra.append("--toc")
            extra.extend(["--toc-depth", str(html.get("toc_depth", 2))])

        css_path = self.resolve(html.get("css"))
        if css_path:
            extra.extend(["--css", css_path])
            self.log(f"  CSS:   {css_path}")

        if html.get("self_contained"):
            extra.append("--embed-resources")

        return extra

    def build(self):
        self.header()

        if not self.check_tool("pandoc"):
            return False

        with self.merged_input() as merged:
            cmd = self.pandoc_cmd(self.pandoc_args())
            cmd.append(merged)
            if not self.exec_cmd(cmd, "HTML generation"):
                return False

        self.log("  Cleaning HTML...")
        clean_html_file(
            self.output_file,
            page_breaks=self.config.html.get("page_breaks", True),
            link_map=build_anchor_index(self.chapters).by_relpath(self.book_dir),
        )

        print(f"  ✓ {self.output_file}")
        return True
