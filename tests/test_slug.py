import pytest

from blogapi.core.slug import generate_slug


class TestGenerateSlug:
    @pytest.mark.parametrize("text,expected", [
        ("Hello World!!", "hello-world"),
        ("Tech & Science", "tech-science"),
        ("My First Post", "my-first-post"),
        ("  Leading and trailing  ", "leading-and-trailing"),
        ("Already-a-slug", "already-a-slug"),
        ("Multiple   ---   separators", "multiple-separators"),
        ("Python 3.12 Released", "python-3-12-released"),
        ("Café au lait", "caf-au-lait"),
    ])
    def test_generate_slug(self, text, expected):
        assert generate_slug(text) == expected

    def test_only_symbols_gives_empty_slug(self):
        assert generate_slug("!!! ???") == ""

    def test_slug_is_idempotent(self):
        slug = generate_slug("Some Title: Part 2")
        assert generate_slug(slug) == slug
