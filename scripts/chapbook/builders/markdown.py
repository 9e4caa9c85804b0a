"""
Markdown builder.

Writes the merged single-document markdown, with cross-chapter links
already pointing at in-document anchors. Useful for word counts, for
sharing with an editor, or for feeding into other tools. No pandoc.
"""

from chapbook.builders.base import BaseBuilder
from chapbook.concat import write_merged


class MarkdownBuilder(BaseBuilder):
    format_name = "Markdown"
    extension = ".md"

    def build(self):
        self.header()

        write_merged(self.chapters, self.output_file)

        words = sum(c.word_count for c in self.chapters)
        self.log(f"  Input: {len(self.chapters)} chapters, ~{words} words")

        print(f"  ✓ {self.output_file}")
        return True
