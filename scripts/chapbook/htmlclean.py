"""
Clean pandoc's standalone HTML before it goes to the ebook compiler.

kindlegen is fussy about what it is fed: scripts make it complain,
empty paragraphs turn into blank pages, and it only starts chapters on a
new page when told to with <mbp:pagebreak/>.
"""

import posixpath
from urllib.parse import unquote

from bs4 import BeautifulSoup, Comment


def clean_html(html, page_breaks=True, keep_title_block=False, link_map=None):
    """
    Tidy a pandoc HTML document. Returns the cleaned HTML as a string.

    Args:
        html:             HTML text from pandoc (--standalone --section-divs)
        page_breaks:      Insert <mbp:pagebreak/> between chapters
        keep_title_block: Keep pandoc's generated title header
        link_map:         AnchorIndex.by_relpath() entries, used to resolve
                          leftover *.md links; unresolvable ones are kept
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(["script", "noscript"]):
        tag.decompose()

    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    if not keep_title_block:
        header = soup.find("header", id="title-block-header")
        if header:
            header.decompose()

    for p in soup.find_all("p"):
        if not p.get_text(strip=True) and not p.find(["img", "svg", "br"]):
            p.decompose()

    for span in soup.find_all("span"):
        if not span.attrs:
            span.unwrap()

    _mark_chapters(soup, page_breaks)
    _rewrite_md_links(soup, link_map or {})

    return str(soup)


def _mark_chapters(soup, page_breaks):
    chapters = soup.find_all("section", class_="level1")
    for i, section in enumerate(chapters):
        classes = section.get("class", [])
        if "chapter" not in classes:
            section["class"] = classes + ["chapter"]
        if page_breaks and i > 0:
            section.insert_before(soup.new_tag("mbp:pagebreak"))


def _rewrite_md_links(soup, link_map):
    for a in soup.find_all("a", href=True):
        href = a["href"]
        path, _, frag = href.partition("#")
        if not path.lower().endswith(".md") or "://" in path:
            continue
        entry = _find_entry(link_map, unquote(path))
        if entry is None:
            continue
        if frag:
            target = entry["anchors"].get(unquote(frag))
        else:
            target = entry["chapter"]
        if target:
            a["href"] = f"#{target}"


def _find_entry(link_map, path):
    """
    The chapter a leftover href names. The linking chapter is unknown once
    everything is one document, so the path is matched against book-relative
    paths: exactly, or by a unique trailing match.
    """
    parts = [p for p in posixpath.normpath(path).split("/") if p not in ("", ".", "..")]
    rel = "/".join(parts)
    if rel in link_map:
        return link_map[rel]
    matches = [key for key in link_map if key.endswith("/" + rel)]
    if len(matches) == 1:
        return link_map[matches[0]]
    return None


def clean_html_file(path, **kwargs):
    """Clean an HTML file in place."""
    with open(path, "r", encoding="utf-8") as f:
        html = f.read()

    cleaned = clean_html(html, **kwargs)

    with open(path, "w", encoding="utf-8") as f:
        f.write(cleaned)
    return path
