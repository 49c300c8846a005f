"""
Splitting of rich text note content into block-sized pieces.
"""

from typing import List

from bs4 import BeautifulSoup, Comment, NavigableString, Tag


LIST_TAGS = ("ul", "ol")
BLOCK_TAGS = (
    "p", "div", "blockquote", "pre", "li",
    "h1", "h2", "h3", "h4", "h5", "h6",
) + LIST_TAGS


def _element_text(node: Tag) -> str:
    for br in node.find_all("br"):
        br.replace_with("\n")
    return node.get_text()


def split_html(html: str) -> List[str]:
    """
    Split an HTML fragment into the texts of the blocks it renders as.

    Each top-level block element becomes one block, except lists, which
    yield one block per item. Runs of inline elements and bare text
    between them are merged into a single block. Blocks with no visible
    text are dropped.
    """
    if not html or not html.strip():
        return []

    soup = BeautifulSoup(html, "html.parser")
    texts: List[str] = []
    inline_run: List[str] = []

    def flush():
        texts.append("".join(inline_run).strip())
        inline_run.clear()

    for node in soup.contents:
        if isinstance(node, Comment):
            continue
        if isinstance(node, Tag) and node.name in BLOCK_TAGS:
            flush()
            if node.name in LIST_TAGS:
                for item in node.find_all("li", recursive=False):
                    texts.append(item.get_text(" ", strip=True))
            else:
                texts.append(_element_text(node).strip())
        elif isinstance(node, Tag):
            inline_run.append("\n" if node.name == "br" else _element_text(node))
        elif isinstance(node, NavigableString):
            inline_run.append(str(node))
    flush()

    return [text for text in texts if text]
