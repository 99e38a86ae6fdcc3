from __future__ import annotations

from typing import List

from bs4 import BeautifulSoup


# Tags whose end should become a line break in plain text.
_BLOCK_TAGS = ["p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre", "tr"]


def sanitize_html(html: str) -> str:
    """
    Turn Zendesk rich text into plain text for Canny.

    - <script>/<style> contents are dropped
    - <br> and block-level closings become newlines
    - entities are decoded (&amp; -> &)
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style"]):
        tag.decompose()

    for br in soup.find_all("br"):
        br.replace_with("\n")

    for block in soup.find_all(_BLOCK_TAGS):
        block.append("\n")

    text = soup.get_text()

    # Collapse runs of blank lines left behind by nested blocks
    lines = [line.strip() for line in text.splitlines()]
    cleaned: List[str] = []
    for line in lines:
        if not line and (not cleaned or not cleaned[-1]):
            continue
        cleaned.append(line)

    return "\n".join(cleaned).strip()
