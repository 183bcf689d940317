from pressroom.core.text_metrics import (
    has_visible_content,
    html_to_text,
    make_excerpt,
    reading_time,
    slugify,
    word_count,
)


def test_slugify_collapses_punctuation():
    assert slugify("Hello, World! 2024") == "hello-world-2024"
    assert slugify("AI Basics") == "ai-basics"
    assert slugify("  --Leading and trailing--  ") == "leading-and-trailing"


def test_slugify_non_ascii_title_is_empty():
    assert slugify("你好，世界") == ""


def test_html_to_text_strips_tags_scripts_and_entities():
    html = "<style>p{color:red}</style><p>Hello&nbsp;<b>there</b></p><script>alert(1)</script>"
    assert html_to_text(html) == "Hello there"


def test_word_count_and_reading_time():
    html = "<p>" + " ".join(["word"] * 401) + "</p>"
    assert word_count(html) == 401
    assert reading_time(401) == 3
    assert reading_time(0) == 1
    assert word_count("") == 0


def test_make_excerpt_truncates_with_ellipsis():
    text = "a" * 250
    assert make_excerpt(f"<p>{text}</p>") == "a" * 200 + "..."
    assert make_excerpt("<p>short</p>") == "short"


def test_html_to_text_ignores_gt_inside_attributes_and_comments():
    assert html_to_text('<p><img alt="x > y" src="a.png">Hello</p>') == "Hello"
    assert word_count('<p><img alt="x > y" src="a.png">Hello</p>') == 1
    assert html_to_text("<p>One<!-- a > b --> two</p>") == "One two"


def test_excerpt_skips_markup_noise():
    html = '<p data-note="1 > 0">Intro</p><!-- draft > notes --><p>Body text</p>'
    assert make_excerpt(html) == "Intro Body text"


def test_visible_content_accepts_image_only_body():
    assert has_visible_content('<p><img src="chart.png"></p>') is True
    assert has_visible_content("<p> </p><!-- <img src='x.png'> -->") is False
    assert has_visible_content("") is False
