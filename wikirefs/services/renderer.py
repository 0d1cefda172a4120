#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Markup renderer
===============
Parses page source to HTML ahead of the pre-render stages.

Supported formats:
  - markdown  : rendered via mistune (with extras: tables, fenced code, strikethrough)
  - rst       : rendered via docutils
  - html      : passed through unchanged

Refs tags survive both parsers as plain text, so they are scanned in the
resulting HTML.  Fenced code is highlighted by Pygments, which splits the
text into spans; tags shown inside code samples are therefore not resolved.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import html as _html


CONTENT_FORMATS = ("markdown", "rst", "html")


# -----------------------------------------------------------------------------
# Markdown renderer via mistune
# -----------------------------------------------------------------------------

def _highlight_code(code: str, lang: str) -> str:
    """Highlight *code* using Pygments.  Unknown languages render as plain text."""
    from pygments import highlight
    from pygments.formatters import HtmlFormatter
    from pygments.lexers import TextLexer, get_lexer_by_name
    from pygments.util import ClassNotFound

    try:
        lexer = get_lexer_by_name(lang.strip(), stripall=True)
    except ClassNotFound:
        lexer = TextLexer()
    return highlight(code, lexer, HtmlFormatter(nowrap=False, cssclass="highlight"))


def _make_md_renderer():
    import mistune
    from mistune.plugins.formatting import strikethrough
    from mistune.plugins.table import table
    from mistune.plugins.url import url

    class _HighlightRenderer(mistune.HTMLRenderer):
        def block_code(self, code: str, **kwargs) -> str:
            info = kwargs.get("info") or ""
            lang = info.split()[0] if info else ""
            if lang:
                return _highlight_code(code, lang)
            return f"<pre><code>{_html.escape(code)}</code></pre>"

    return mistune.create_markdown(
        renderer=_HighlightRenderer(escape=False),
        plugins=[table, strikethrough, url],
    )


_md_renderer = None


def _get_md_renderer():
    global _md_renderer
    if _md_renderer is None:
        _md_renderer = _make_md_renderer()
    return _md_renderer


# -----------------------------------------------------------------------------
# RST renderer via docutils
# -----------------------------------------------------------------------------

def _render_rst(content: str) -> str:
    from docutils.core import publish_parts
    parts = publish_parts(
        source=content,
        writer="html5",
        settings_overrides={
            "halt_level": 5,
            "report_level": 5,
            "input_encoding": "unicode",
            "output_encoding": "unicode",
            "syntax_highlight": "short",
            "doctitle_xform": False,
            "sectsubtitle_xform": False,
        },
    )
    return parts["body"]


# -----------------------------------------------------------------------------

def render(content: str, fmt: str = "markdown") -> str:
    """Render *content* (``markdown``, ``rst`` or ``html``) to HTML."""
    fmt = fmt.lower()
    if fmt == "markdown":
        return _get_md_renderer()(content)
    if fmt == "rst":
        return _render_rst(content)
    if fmt == "html":
        return content
    # Fallback: treat as plain text wrapped in <pre>
    return f"<pre>{_html.escape(content)}</pre>"


# -----------------------------------------------------------------------------
