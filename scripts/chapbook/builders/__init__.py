from chapbook.builders.epub import EpubBuilder
from chapbook.builders.html import HtmlBuilder
from chapbook.builders.mobi import MobiBuilder
from chapbook.builders.markdown import MarkdownBuilder

# Build order matters: mobi reuses the epub built before it
BUILDERS = {
    "epub": EpubBuilder,
    "html": HtmlBuilder,
    "mobi": MobiBuilder,
    "md": MarkdownBuilder,
}

# --all builds these. MOBI needs a proprietary compiler, so it is opt-in with --mobi
DEFAULT_FORMATS = ["epub", "html", "md"]
