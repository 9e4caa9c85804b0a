"""
Book configuration: load, validate, and provide defaults for book.yaml.
"""

import os

import yaml


# Fields required in every book.yaml
REQUIRED_FIELDS = ["title", "author", "prefix"]

# Metadata passed through to pandoc when set
METADATA_FIELDS = ["title", "author", "lang", "date", "publisher", "rights",
                   "description", "subject"]

# Defaults applied if missing
DEFAULTS = {
    "lang": "en-US",
    "date": "",
    "markdown_extensions": "fenced_divs+native_divs+auto_identifiers",
    "sections": ["front", "intro", "chapters", "back"],
    "chapters": None,
    "epub": {},
    "html": {},
    "mobi": {},
}

EPUB_DEFAULTS = {
    "toc": True,
    "toc_depth": 1,
    "css": "epub.css",
    "cover": "cover.jpg",
    "validate": True,
}

HTML_DEFAULTS = {
    "toc": True,
    "toc_depth": 2,
    "css": "html.css",
    "self_contained": False,
    "page_breaks": True,
}

MOBI_DEFAULTS = {
    "compiler": "kindlegen",
    "compression": "c1",
    "allow_warnings": True,
}

FORMAT_DEFAULTS = {
    "epub": EPUB_DEFAULTS,
    "html": HTML_DEFAULTS,
    "mobi": MOBI_DEFAULTS,
}


class ConfigError(Exception):
    """Raised when book.yaml is missing or invalid."""
    pass


class BookConfig:
    """
    Loaded, validated book configuration.

    Usage:
        config = BookConfig.load(book_dir)
        config.title          # "Unix as IDE"
        config.epub["css"]    # "epub.css"
        config.manifest       # ["intro/01-introduction.md", ...] or None
    """

    def __init__(self, data, book_dir):
        self._data = data
        self.book_dir = book_dir

    @classmethod
    def load(cls, book_dir):
        """Load and validate book.yaml from a book directory."""
        yaml_path = os.path.join(book_dir, "book.yaml")
        if not os.path.exists(yaml_path):
            raise ConfigError(f"No book.yaml found in {book_dir}")

        with open(yaml_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"book.yaml is not valid YAML: {e}")

        return cls.from_dict(data, book_dir)

    @classmethod
    def from_dict(cls, data, book_dir):
        """Validate a parsed mapping and apply defaults."""
        if not isinstance(data, dict):
            raise ConfigError(f"book.yaml must be a YAML mapping, got {type(data).__name__}")

        missing = [key for key in REQUIRED_FIELDS if not data.get(key)]
        if missing:
            raise ConfigError(
                f"book.yaml missing required fields: {', '.join(missing)}"
            )

        for key, default in DEFAULTS.items():
            if key not in data or data[key] is None and default is not None:
                data[key] = (
                    type(default)(default) if isinstance(default, (list, dict)) else default
                )

        for section, defaults in FORMAT_DEFAULTS.items():
            if not isinstance(data[section], dict):
                raise ConfigError(f"book.yaml '{section}' must be a mapping")
            for key, default in defaults.items():
                data[section].setdefault(key, default)

        if not isinstance(data["sections"], list) or not data["sections"]:
            raise ConfigError("book.yaml 'sections' must be a non-empty list")

        if data["chapters"] is not None:
            data["chapters"] = _validate_manifest(data["chapters"], book_dir)

        return cls(data, book_dir)

    # ── Attribute access ───────────────────────────────────

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"BookConfig has no field '{name}'")

    def get(self, key, default=None):
        return self._data.get(key, default)

    def __getitem__(self, key):
        return self._data[key]

    def __contains__(self, key):
        return key in self._data

    # ── Convenience ────────────────────────────────────────

    @property
    def manifest(self):
        """Explicit reading order as paths relative to the book, or None."""
        return self._data.get("chapters")

    @property
    def from_str(self):
        """The pandoc --from string including extensions."""
        return f"markdown+smart+{self.markdown_extensions}"

    def metadata_args(self):
        """Build pandoc --metadata arguments list."""
        args = []
        for key in METADATA_FIELDS:
            value = self.get(key)
            if value:
                args.extend(["--metadata", f"{key}={value}"])
        return args

    def summary(self):
        """Print a short config summary."""
        print(f"\n  Book:   {self.title}")
        print(f"  Author: {self.author}")
        print(f"  Source: {self.book_dir}")
        if self.manifest:
            print(f"  Order:  manifest ({len(self.manifest)} chapters)")


def _validate_manifest(entries, book_dir):
    """Check the chapters: list. Returns normalized relative paths."""
    if not isinstance(entries, list):
        raise ConfigError("book.yaml 'chapters' must be a list of file paths")

    seen = set()
    normalized = []
    for entry in entries:
        if not isinstance(entry, str) or not entry.strip():
            raise ConfigError(f"book.yaml 'chapters' has an invalid entry: {entry!r}")
        rel = os.path.normpath(entry.strip())
        if rel in seen:
            raise ConfigError(f"book.yaml 'chapters' lists '{entry}' twice")
        if not rel.endswith(".md"):
            raise ConfigError(f"book.yaml 'chapters' entry is not markdown: '{entry}'")
        if not os.path.isfile(os.path.join(book_dir, rel)):
            raise ConfigError(f"book.yaml 'chapters' entry not found: '{entry}'")
        seen.add(rel)
        normalized.append(rel)

    if not normalized:
        raise ConfigError("book.yaml 'chapters' is empty")
    return normalized
