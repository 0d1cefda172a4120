"""
Tests for the markup renderer that runs ahead of the refs pre-render stage.

All tests use the renderer and scanner directly, no HTTP round-trip needed.
"""
from __future__ import annotations

import pytest
from wikirefs.services.renderer import CONTENT_FORMATS, render
from wikirefs.services.tags import scan


# ── Markdown ──────────────────────────────────────────────────────────────────

def test_md_fenced_python_produces_highlight_div():
    html = render("```python\nx = 1\n```", fmt="markdown")
    assert '<div class="highlight">' in html
    assert "<span" in html


def test_md_fenced_no_lang_produces_pre():
    html = render("```\nplain text\n```", fmt="markdown")
    assert "<pre>" in html
    assert "plain text" in html


def test_md_table_plugin():
    html = render("| a | b |\n|---|---|\n| 1 | 2 |\n", fmt="markdown")
    assert "<table>" in html


def test_md_keeps_tags_as_text():
    html = render("See $refs(/docs, depth=2) below.", fmt="markdown")
    assert "$refs(/docs, depth=2)" in html
    _, cmap = scan(html)
    assert list(cmap) == ["refs-0"]


# ── reStructuredText ─────────────────────────────────────────────────────────

def test_rst_paragraph_keeps_tags():
    html = render("Title\n=====\n\nSee $ref(a.png).\n", fmt="rst")
    assert "$ref(a.png)" in html
    _, cmap = scan(html)
    assert cmap["ref-0"].match.positional == ["a.png"]


# ── Passthrough and fallback ─────────────────────────────────────────────────

def test_html_is_passed_through():
    src = "<p>$ref(a.png)</p>"
    assert render(src, fmt="html") == src


def test_format_is_case_insensitive():
    assert render("<b>x</b>", fmt="HTML") == "<b>x</b>"


def test_unknown_format_is_escaped_in_pre():
    assert render("<b>x</b>", fmt="plain") == "<pre>&lt;b&gt;x&lt;/b&gt;</pre>"


@pytest.mark.parametrize("fmt", CONTENT_FORMATS)
def test_empty_content(fmt):
    assert "$" not in render("", fmt=fmt)
