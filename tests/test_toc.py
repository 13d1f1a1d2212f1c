"""Tests for heading indexing and the table of contents."""

from bs4 import BeautifulSoup

from markdown_docgen.toc import Heading, add_heading_ids, extract_headings, generate_toc, index_headings

HTML = (
    "<h1>Guide</h1><p>intro</p>"
    "<h2 id=\"old\">Install</h2>"
    "<h3>Linux</h3>"
    "<h4>Too deep</h4>"
    "<h2>table of contents</h2>"
    "<h2>  </h2>"
    "<h2>Usage  <code>run</code></h2>"
)


def test_ids_are_sequential_and_replace_existing() -> None:
    html, headings = index_headings(HTML)

    assert headings == [
        Heading(1, "Guide", "heading-0"),
        Heading(2, "Install", "heading-1"),
        Heading(3, "Linux", "heading-2"),
        Heading(2, "Usage run", "heading-3"),
    ]
    soup = BeautifulSoup(html, "html.parser")
    assert soup.find("h2", string="Install")["id"] == "heading-1"
    assert soup.find("h4").get("id") is None


def test_reserved_titles_are_case_insensitive() -> None:
    headings = extract_headings("<h1>CONTENTS</h1><h1>目次</h1><h1>Body</h1>")

    assert [h.text for h in headings] == ["Body"]
    assert headings[0].id == "heading-0"


def test_custom_reserved_titles() -> None:
    headings = extract_headings("<h1>Cover</h1><h1>Body</h1>", reserved_titles=["cover"])

    assert [h.text for h in headings] == ["Body"]


def test_max_level() -> None:
    assert [h.level for h in extract_headings(HTML, max_level=1)] == [1]


def test_indexing_is_idempotent() -> None:
    once, first = index_headings(HTML)
    twice, second = index_headings(once)

    assert once == twice
    assert first == second
    assert add_heading_ids(once) == once


def test_generate_toc() -> None:
    toc = generate_toc([Heading(1, "Guide", "heading-0"), Heading(2, "A & B", "heading-1")], title="Contents")
    soup = BeautifulSoup(toc, "html.parser")

    block = soup.find("div", class_="table-of-contents")
    assert block.find("h1").get_text() == "Contents"
    items = block.find_all("li")
    assert [li["class"] for li in items] == [["toc-level-1"], ["toc-level-2"]]
    assert [li.find("a")["href"] for li in items] == ["#heading-0", "#heading-1"]
    assert items[1].get_text() == "A & B"
    assert soup.find("div", class_="page-break") is not None


def test_generate_toc_without_page_break() -> None:
    assert "page-break" not in generate_toc([], include_page_break=False)
