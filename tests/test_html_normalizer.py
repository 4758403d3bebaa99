"""Tests for HTML normalization and traversal helpers."""

from __future__ import annotations

from bs4 import Comment

from postkeep.utils.html import (
    create_tag,
    get_downloadable,
    get_inlines,
    normalize_tree,
    parse_html,
    structured_text,
)


def _div(html: str):
    return parse_html(html).div


def test_normalize_trims_blank_edges() -> None:
    root = _div("<div>\n   <p></p>  <p>Hello</p>\n  \n</div>")
    result = normalize_tree(root)
    assert str(result) == "<div><p>Hello</p></div>"


def test_normalize_collapses_blank_lines_and_indentation() -> None:
    root = _div("<div><p>one\n      two\n\n\n\nthree</p></div>")
    result = normalize_tree(root)
    assert result.p.get_text() == "one\ntwo\n\nthree"


def test_normalize_elides_same_tag_wrapper() -> None:
    root = _div("<div><div><p>inner</p></div></div>")
    result = normalize_tree(root)
    assert str(result) == "<div><p>inner</p></div>"


def test_normalize_never_elides_anchor() -> None:
    root = parse_html('<a href="/x"><a href="/y">t</a></a>').a
    result = normalize_tree(root)
    assert result.name == "a"


def test_normalize_keeps_media_as_non_empty() -> None:
    root = _div('<div><img src="https://a/b.png"></div>')
    result = normalize_tree(root)
    assert result.img is not None


def test_normalize_returns_none_for_comments() -> None:
    assert normalize_tree(Comment("note")) is None


def test_normalize_is_idempotent() -> None:
    root = _div("<div>\n  <section>\n   <p> a </p>\n\n\n <p>b</p> </section> </div>")
    once = str(normalize_tree(root))
    twice = str(normalize_tree(parse_html(once).div))
    assert once == twice


def test_get_downloadable_resolves_relative_urls() -> None:
    assert get_downloadable("/img/a.png", "https://example.com/post/1") == "https://example.com/img/a.png"
    assert get_downloadable("data:image/png;base64,AAAA", "https://example.com") is None
    assert get_downloadable(None) is None
    assert get_downloadable("relative.png") is None


def test_get_inlines_collects_in_order_without_descending() -> None:
    root = _div(
        '<div><img src="1.png"><a href="/f"><img src="2.png"></a>'
        '<video src="v.mp4"></video></div>'
    )
    images_only = get_inlines(root)
    assert [node["src"] for node in images_only] == ["1.png", "2.png"]

    with_links = get_inlines(root, images=True, videos=True, links=True)
    assert [node.name for node in with_links] == ["img", "a", "video"]


def test_structured_text_separates_blocks() -> None:
    root = _div("<div><h1>Title</h1><p>first   line<br>second</p><ul><li>x</li><li>y</li></ul></div>")
    assert structured_text(root) == "Title\nfirst line\nsecond\nx\ny"


def test_create_tag_with_text() -> None:
    tag = create_tag("p", "hello")
    assert str(tag) == "<p>hello</p>"
