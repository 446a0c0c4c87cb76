"""Deterministic HTML synthesis for simulated pages."""

import logging

from navcache.core.events import PageContent, PageId

logger = logging.getLogger(__name__)

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head><title>{title}</title></head>
<body>
<h1>{title}</h1>
{sections}
<nav>{links}</nav>
</body>
</html>
"""


class HtmlContentProvider:
    """
    Builds a small HTML document per page id.

    Output depends only on the page id, so regenerated pages are identical.
    The number of sections varies with the page id to give pages different
    sizes.
    """

    def __init__(self, max_sections: int = 4, links_per_page: int = 3, title_prefix: str = "Page"):
        self.max_sections = max(1, max_sections)
        self.links_per_page = max(0, links_per_page)
        self.title_prefix = title_prefix
        self.generated = 0

    def generate(self, page: PageId) -> PageContent:
        title = f"{self.title_prefix} {page}"
        section_count = 1 + page % self.max_sections
        sections = "\n".join(
            f"<section id=\"s{i}\"><p>Content block {i} of {title}.</p></section>"
            for i in range(section_count)
        )
        links = " ".join(
            f"<a href=\"/pages/{page + offset}\">next {offset}</a>"
            for offset in range(1, self.links_per_page + 1)
        )
        self.generated += 1
        logger.debug(f"Generated HTML for page {page}")
        return PageContent(_PAGE_TEMPLATE.format(title=title, sections=sections, links=links))
