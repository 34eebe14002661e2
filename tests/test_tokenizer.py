"""
Tests for the text tokenizer (epack_export/extract/tokenizer.py).
"""

from __future__ import annotations

from bs4 import NavigableString

from epack_export.extract.tokenizer import collapse_text, split_lines, tokenize
from epack_export.runner import parse_document as parse_html


class TestTokenize:
    def test_document_order(self) -> None:
        doc = parse_html("<div><span>12</span><p><b>Connor</b> Bedard</p><span>3</span></div>")
        assert tokenize(doc.div) == ["12", "Connor", "Bedard", "3"]

    def test_whitespace_only_nodes_dropped(self) -> None:
        doc = parse_html("<div>\n   <span> 7 </span>\n\t<span>Nick Suzuki</span>\n</div>")
        assert tokenize(doc.div) == ["7", "Nick Suzuki"]

    def test_multiline_text_is_split(self) -> None:
        doc = parse_html("<div>2024-25 SP Game Used Hockey\n  Gold Parallel  \n\n- Legends</div>")
        assert tokenize(doc.div) == ["2024-25 SP Game Used Hockey", "Gold Parallel", "- Legends"]

    def test_script_style_and_comments_skipped(self) -> None:
        doc = parse_html(
            "<div><script>var x = 1;</script><style>.a{}</style>"
            "<!-- hidden --><span>Visible</span></div>"
        )
        assert tokenize(doc.div) == ["Visible"]

    def test_none_and_empty(self) -> None:
        assert tokenize(None) == []
        assert tokenize(parse_html("<div></div>").div) == []

    def test_bare_text_node(self) -> None:
        assert tokenize(NavigableString("  one\ntwo ")) == ["one", "two"]

    def test_fresh_list_per_call(self) -> None:
        doc = parse_html("<div><span>a</span></div>")
        first = tokenize(doc.div)
        first.append("mutated")
        assert tokenize(doc.div) == ["a"]


def test_split_lines() -> None:
    assert split_lines("a\r\n\n  b  \rc") == ["a", "b", "c"]


def test_collapse_text() -> None:
    doc = parse_html("<li><span>201</span> <span>Connor Bedard</span></li>")
    assert collapse_text(doc.li) == "201 Connor Bedard"
