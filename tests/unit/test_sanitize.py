from __future__ import annotations

from zendesk_canny.sanitize import sanitize_html


def test_empty_input():
    assert sanitize_html("") == ""


def test_plain_text_is_unchanged():
    assert sanitize_html("Export to CSV please") == "Export to CSV please"


def test_paragraphs_and_breaks_become_lines():
    html = "<p>First line<br>second line</p><p>Next paragraph</p>"

    assert sanitize_html(html) == "First line\nsecond line\nNext paragraph"


def test_scripts_are_dropped_and_entities_decoded():
    html = '<div>R&amp;D <script>alert("x")</script><b>rocks</b></div>'

    assert sanitize_html(html) == "R&D rocks"


def test_blank_line_runs_are_collapsed():
    html = "<div><p>a</p></div><div></div><div><p>b</p></div>"

    assert "\n\n\n" not in sanitize_html(html)
    assert sanitize_html(html).startswith("a")
    assert sanitize_html(html).endswith("b")
