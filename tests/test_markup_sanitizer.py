from demo_content_agent.markup import sanitize_post_markup


def test_block_comments_and_allowed_markup_survive():
    html = (
        "<!-- wp:heading -->\n<h2 class=\"wp-block-heading\">Intro</h2>\n<!-- /wp:heading -->\n"
        "<!-- wp:paragraph -->\n<p>Some <strong>bold</strong> text.</p>\n<!-- /wp:paragraph -->"
    )
    assert sanitize_post_markup(html) == html


def test_dangerous_tags_are_removed_with_contents():
    cleaned = sanitize_post_markup("<p>ok</p><script>alert(1)</script><style>p{}</style><iframe src='x'></iframe>")
    assert cleaned == "<p>ok</p>"


def test_unknown_wrappers_are_unwrapped():
    cleaned = sanitize_post_markup("<html><body><article><p>Hello</p></article></body></html>")
    assert cleaned == "<p>Hello</p>"


def test_attributes_are_filtered():
    cleaned = sanitize_post_markup(
        '<p onclick="x()" class="lead" data-x="1">a</p><a href="javascript:alert(1)" target="_blank">b</a>'
        '<a href="https://example.com">c</a>'
    )
    assert "onclick" not in cleaned
    assert 'class="lead"' in cleaned
    assert 'data-x="1"' in cleaned
    assert "javascript" not in cleaned
    assert 'target="_blank"' in cleaned
    assert 'href="https://example.com"' in cleaned
