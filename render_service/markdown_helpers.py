"""
Helper functions for turning markdown into HTML.

Markdown parsing is done by markdown-it-py (GFM-like preset: tables,
strikethrough, autolinks, task lists); fenced code blocks are classified
by Pygments through the parser's highlight hook.
"""

import html
from functools import lru_cache

from markdown_it import MarkdownIt
from mdit_py_plugins.tasklists import tasklists_plugin
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound


# Code blocks are emitted as <pre><code class="hljs language-...">
LANG_PREFIX = "hljs language-"

_formatter = HtmlFormatter(nowrap=True)


def highlight_code(code: str, language: str, attrs: str = "") -> str:
    """
    Classify a fenced code block into highlighted markup.

    Args:
        code: Raw code block content
        language: Fence info language (may be empty)
        attrs: Remaining fence info; unused

    Returns:
        Pygments span markup, or the escaped code when the language
        is missing or unknown (plain text)
    """
    if not language:
        return html.escape(code)
    try:
        lexer = get_lexer_by_name(language, stripnl=False)
    except ClassNotFound:
        return html.escape(code)
    return highlight(code, lexer, _formatter)


@lru_cache(maxsize=1)
def _get_parser() -> MarkdownIt:
    md = MarkdownIt(
        "gfm-like",
        {"html": True, "langPrefix": LANG_PREFIX, "highlight": highlight_code},
    )
    md.use(tasklists_plugin)
    return md


def markdown_to_html(markdown: str) -> str:
    """
    Convert markdown source into an HTML fragment.

    Args:
        markdown: Markdown text

    Returns:
        HTML fragment (no <html>/<body> wrapper)
    """
    return _get_parser().render(markdown)
