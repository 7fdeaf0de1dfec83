"""
Unit tests for filename slugs and atomic writes.
"""

from pathlib import Path

import pytest
from webdigest.utils.atomic import atomic_write_text
from webdigest.utils.slugify import slugify, slugify_url


class TestSlugify:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Hello World!", "hello-world"),
            ("My File (v2.1).txt", "my-file-v2-1-txt"),
            ("CON", "con-reserved"),
            ("   ", ""),
            ("---a---", "a"),
        ],
    )
    def test_slugify(self, text, expected):
        assert slugify(text) == expected

    def test_max_length(self):
        assert len(slugify("a" * 500, max_length=50)) == 50

    def test_slugify_url_is_stable_and_distinct(self):
        first = slugify_url("https://example.com/papers/a.pdf")
        assert first == slugify_url("https://example.com/papers/a.pdf")
        assert first.startswith("example-com-papers-a-pdf-")
        assert first != slugify_url("https://example.com/papers/a.pdf?v=2")

    def test_slugify_url_without_path(self):
        assert slugify_url("https://example.com").startswith("example-com-")


class TestAtomicWriteText:
    def test_writes_and_overwrites(self, tmp_path: Path):
        target = tmp_path / "sub" / "out.md"
        atomic_write_text(target, "first")
        atomic_write_text(target, "second")
        assert target.read_text() == "second"
        assert [p.name for p in target.parent.iterdir()] == ["out.md"]

    def test_parent_that_is_a_file_raises(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(OSError):
            atomic_write_text(blocker / "out.md", "content")
