"""Tests for text extraction and placeholder classification."""

import pytest

from config.core_config import FallbackHeuristics
from pipelines.content_extractor import (
    ContentClassification,
    classify_content,
    extract_category,
    extract_keywords,
    extract_platform,
    extract_record,
    extract_snippet,
    generate_id,
    page_id,
)

REAL_TEXT = (
    "Buttons initiate app-specific actions, have customizable backgrounds, and can include a title "
    "or an icon. The system provides several button styles for iOS and macOS interfaces. Make "
    "buttons easy to choose: a button needs a hit region of at least 44x44 points so people can "
    "tap it accurately. Use a verb or verb phrase for the title to describe the action it performs."
)

# Known samples of upstream placeholder pages and real content
CORPUS = [
    ("", ContentClassification.FALLBACK),
    ("   \n\t ", ContentClassification.FALLBACK),
    ("This page requires JavaScript. " + REAL_TEXT, ContentClassification.FALLBACK),
    ("Content extraction failed for this section.", ContentClassification.FALLBACK),
    ("## Fallback Information\nSee the website.", ContentClassification.FALLBACK),
    ("This single page application loads content dynamically. " + REAL_TEXT,
     ContentClassification.LIKELY_FALLBACK),
    ("Please visit the official documentation. " + REAL_TEXT, ContentClassification.LIKELY_FALLBACK),
    ("Buttons initiate actions.", ContentClassification.LIKELY_FALLBACK),
    (REAL_TEXT, ContentClassification.REAL),
]

PAGE = """
<html>
  <head><title>Buttons | Apple Developer Documentation</title><script>var x = 1;</script></head>
  <body>
    <header><nav><a href="/design">Design</a></nav></header>
    <main>
      <h1>Buttons</h1>
      <p>Buttons initiate app-specific actions and can include a title or an icon.</p>
      <h2>Best practices</h2>
      <p>Make buttons easy to tap with a minimum hit region of 44x44 points.</p>
    </main>
    <footer>Copyright</footer>
  </body>
</html>
"""


class TestClassifyContent:

    @pytest.mark.parametrize("text,expected", CORPUS)
    def test_corpus(self, text, expected):
        assert classify_content(text) is expected

    def test_none_is_fallback(self):
        assert classify_content(None) is ContentClassification.FALLBACK

    def test_thresholds_are_configurable(self):
        heuristics = FallbackHeuristics(min_real_length=10, strong_indicators=['lorem ipsum'], weak_indicators=[])
        assert classify_content("Buttons initiate actions.", heuristics) is ContentClassification.REAL
        assert classify_content("Lorem ipsum dolor sit amet", heuristics) is ContentClassification.FALLBACK


class TestUrlHeuristics:

    @pytest.mark.parametrize("href,text,expected", [
        ("/design/human-interface-guidelines/designing-for-ios", "Designing for iOS", "iOS"),
        ("/design/human-interface-guidelines/designing-for-macos", "", "macOS"),
        ("/design/human-interface-guidelines/designing-for-visionos", "", "visionOS"),
        ("/design/human-interface-guidelines/buttons", "Buttons", "universal"),
    ])
    def test_extract_platform(self, href, text, expected):
        assert extract_platform(href, text) == expected

    @pytest.mark.parametrize("href,text,expected", [
        ("/design/human-interface-guidelines/layout", "Layout", "layout"),
        ("/design/human-interface-guidelines/typography", "Typography", "typography"),
        ("/design/human-interface-guidelines/color", "Color", "color-and-materials"),
        ("/design/human-interface-guidelines/buttons", "Buttons", "foundations"),
        ("/design/human-interface-guidelines/text-fields", "Text input", "selection-and-input"),
    ])
    def test_extract_category(self, href, text, expected):
        assert extract_category(href, text) == expected

    def test_generate_id(self):
        assert generate_id("Navigation Bars", "iOS") == "ios-navigation-bars"
        assert generate_id("SF  Symbols!", "universal") == "universal-sf-symbols"
        assert generate_id("Buttons (iOS)", "iOS") == "ios-buttons-ios"

    @pytest.mark.parametrize("url,expected", [
        ("https://developer.apple.com/design/human-interface-guidelines/buttons", "universal-buttons"),
        ("https://developer.apple.com/design/human-interface-guidelines/buttons/", "universal-buttons"),
        ("https://developer.apple.com/design/human-interface-guidelines/designing-for-ios",
         "ios-designing-for-ios"),
        ("https://developer.apple.com/", "universal-developer-apple-com"),
    ])
    def test_page_id(self, url, expected):
        assert page_id(url) == expected


class TestSnippetsAndKeywords:

    def test_snippet_from_start(self):
        text = "a" * 300
        snippet = extract_snippet(text)
        assert snippet == "a" * 200 + "..."

    def test_snippet_short_text_unchanged(self):
        assert extract_snippet("Short text") == "Short text"

    def test_snippet_around_query(self):
        text = "x" * 100 + " target words here " + "y" * 300
        snippet = extract_snippet(text, "target")
        assert snippet.startswith("...")
        assert "target" in snippet
        assert snippet.endswith("...")

    def test_keywords_filter_stop_words_and_short_words(self):
        keywords = extract_keywords("Buttons", "The button and a tap for you to use")
        assert keywords == ["buttons", "button", "tap"]

    def test_keywords_limited(self):
        text = " ".join(f"word{i:03d}" for i in range(50))
        assert len(extract_keywords("", text)) == 20


class TestExtractRecord:

    def test_extracts_title_body_and_tags(self):
        url = "https://developer.apple.com/design/human-interface-guidelines/buttons"
        record = extract_record(PAGE, url)

        assert record.title == "Buttons"
        assert record.id == "universal-buttons"
        assert record.platform == "universal"
        assert record.url == url
        assert "# Buttons" in record.body
        assert "## Best practices" in record.body
        assert "var x" not in record.body
        assert "Copyright" not in record.body
        assert record.snippet.startswith("Buttons Buttons initiate")
        assert "buttons" in record.keywords
        assert record.fetched_at is not None

    def test_explicit_tags_and_title_hint(self):
        record = extract_record("<html><body><p>Tab bars</p></body></html>",
                                "https://example.com/tab-bars",
                                title_hint="Tab bars", platform="iOS", category="navigation")
        assert record.title == "Tab bars"
        assert record.id == "universal-tab-bars"
        assert record.platform == "iOS"
        assert record.category == "navigation"

    def test_title_falls_back_to_title_tag(self):
        record = extract_record("<html><head><title>Sliders</title></head><body>x</body></html>",
                                "https://example.com/sliders")
        assert record.title == "Sliders"
