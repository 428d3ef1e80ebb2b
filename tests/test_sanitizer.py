"""Tests for the HTML sanitizer."""

import pytest

from x2rest.core.sanitizer import Sanitizer


@pytest.fixture
def sanitizer():
    return Sanitizer()


def test_plain_text_unchanged(sanitizer):
    """Test text without markup passes through untouched."""
    assert sanitizer.sanitize("jane@example.com") == "jane@example.com"
    assert sanitizer.sanitize("Tom & Jerry") == "Tom & Jerry"


@pytest.mark.parametrize("value", [None, 42, 3.5, True, ["<script>x</script>"]])
def test_non_strings_unchanged(sanitizer, value):
    """Test non-string values are returned as is."""
    assert sanitizer.sanitize(value) is value


@pytest.mark.parametrize("element", ["script", "form", "style", "iframe", "video", "audio", "object", "textarea"])
def test_forbidden_elements_removed(sanitizer, element):
    """Test active elements are dropped with their content."""
    cleaned = sanitizer.sanitize(f"<p>Hello</p><{element}>bad</{element}>")

    assert element not in cleaned
    assert "bad" not in cleaned
    assert "<p>Hello</p>" in cleaned


def test_link_element_removed(sanitizer):
    """Test void <link> elements are dropped."""
    cleaned = sanitizer.sanitize('<link rel="stylesheet" href="http://evil.test/x.css"><b>ok</b>')

    assert "<link" not in cleaned
    assert "<b>ok</b>" in cleaned


def test_identity_attributes_removed(sanitizer):
    """Test id, class and name attributes are stripped."""
    cleaned = sanitizer.sanitize('<span id="a" class="b" name="c" title="keep">x</span>')

    assert cleaned == '<span title="keep">x</span>'


def test_event_attributes_removed(sanitizer):
    """Test on* handlers are stripped."""
    cleaned = sanitizer.sanitize('<img src="a.png" onerror="alert(1)">')

    assert "onerror" not in cleaned
    assert 'src="a.png"' in cleaned


def test_script_urls_removed(sanitizer):
    """Test javascript: URLs are stripped."""
    cleaned = sanitizer.sanitize('<a href=" javascript:alert(1)">click</a>')

    assert "javascript" not in cleaned
    assert "click" in cleaned


def test_safe_links_kept(sanitizer):
    """Test ordinary links survive."""
    value = '<a href="https://example.com">site</a>'
    assert sanitizer.sanitize(value) == value


def test_comments_removed(sanitizer):
    """Test HTML comments are dropped."""
    assert sanitizer.sanitize("<b>a</b><!-- hidden -->") == "<b>a</b>"


def test_plain_text_with_angle_brackets_unchanged(sanitizer):
    """Test a bare "<" that cannot open a tag leaves the value untouched."""
    assert sanitizer.sanitize("5 < 6 & 7") == "5 < 6 & 7"
    assert sanitizer.sanitize("<3 the product") == "<3 the product"


@pytest.mark.parametrize("markup", [
    '<meta http-equiv="refresh" content="0;url=http://evil.test/">',
    '<base href="http://evil.test/">',
    '<svg><animate attributeName="href" values="javascript:alert(1)"/></svg>',
    "<math><mi>x</mi></math>",
    "<noscript>bad</noscript>",
    "<template>bad</template>",
    '<frameset><frame src="http://evil.test/"></frameset>',
])
def test_document_level_elements_removed(sanitizer, markup):
    """Test redirecting, rebasing and embedded-document elements are dropped."""
    cleaned = sanitizer.sanitize(f"<b>ok</b>{markup}")

    assert cleaned == "<b>ok</b>"


def test_unknown_elements_unwrapped(sanitizer):
    """Test tags outside the formatting allowlist are removed but their text is kept."""
    assert sanitizer.sanitize("<blink>hi</blink> <marquee>there</marquee>") == "hi there"


@pytest.mark.parametrize("url", [
    "data:text/html;base64,PHNjcmlwdD5hbGVydCgxKTwvc2NyaXB0Pg==",
    "JaVaScRiPt:alert(1)",
    "java&#09;script:alert(1)",
    "vbscript:msgbox(1)",
])
def test_unsafe_url_schemes_removed(sanitizer, url):
    """Test URL attributes with non-web schemes are stripped."""
    assert sanitizer.sanitize(f'<a href="{url}">click</a>') == "<a>click</a>"


@pytest.mark.parametrize("url", ["mailto:jane@example.com", "/contacts/5", "#top"])
def test_safe_url_schemes_kept(sanitizer, url):
    """Test mail and relative links survive."""
    value = f'<a href="{url}">link</a>'
    assert sanitizer.sanitize(value) == value


def test_style_attribute_removed(sanitizer):
    """Test inline styles are stripped."""
    cleaned = sanitizer.sanitize('<p style="background:url(javascript:alert(1))">text</p>')

    assert cleaned == "<p>text</p>"


def test_markup_entities_normalized(sanitizer):
    """Test values containing markup come back re-serialized."""
    assert sanitizer.sanitize("<b>Tom & Jerry</b>") == "<b>Tom &amp; Jerry</b>"


def test_disabled_sanitizer_passthrough():
    """Test a disabled sanitizer changes nothing."""
    value = "<script>alert(1)</script>"
    assert Sanitizer(enabled=False).sanitize(value) == value
