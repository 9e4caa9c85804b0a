"""
chapbook: ordered markdown chapters in, one ebook out.

Public API:
    from chapbook.config import BookConfig
    from chapbook.resolve import find_book_dir, assemble_inputs
    from chapbook.chapter import Chapter, load_chapters
    from chapbook.concat import concatenate
    from chapbook.builders import BUILDERS, DEFAULT_FORMATS
    from chapbook.lint import Linter
    from chapbook.epubcheck import validate_epub
"""

__version__ = "1.0.0"
