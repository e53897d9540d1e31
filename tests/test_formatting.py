from applyhawk.formatting import join_or, strip_html


def test_strip_html_decodes_named_and_numeric_entities():
    text = strip_html("<p>&laquo;Acme&raquo; &mdash; R&amp;D&#39;s team</p>")
    assert text == "«Acme» — R&D's team"


def test_strip_html_collapses_whitespace():
    html = "<h2>Requirements</h2>\n<ul>\n  <li>Go</li><li>Kafka&nbsp;Streams</li>\n</ul>"
    assert strip_html(html) == "Requirements Go Kafka Streams"


def test_strip_html_plain_text_and_empty():
    assert strip_html("Backend   engineer") == "Backend engineer"
    assert strip_html(None) == ""
    assert strip_html("") == ""


def test_join_or():
    assert join_or(["Go", "SQL"]) == "Go, SQL"
    assert join_or([]) == "Not specified"
    assert join_or(None, "none") == "none"
