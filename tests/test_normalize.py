"""Tests for shared-prefix stripping."""

from codeqa_cli.normalize import common_prefix, normalize


class TestCommonPrefix:
    """Tests for common_prefix."""

    def test_single_wrapper_directory(self):
        assert common_prefix(["repo-main/a.js", "repo-main/src/b.js"]) == "repo-main/"

    def test_nested_shared_directories(self):
        assert common_prefix(["p/src/a.js", "p/src/lib/b.js"]) == "p/src/"

    def test_no_shared_directory(self):
        assert common_prefix(["a/x.js", "b/y.js"]) == ""

    def test_top_level_file_blocks_prefix(self):
        assert common_prefix(["README.md", "src/a.js"]) == ""

    def test_single_file_keeps_its_name(self):
        """The file name itself is never part of the prefix."""
        assert common_prefix(["proj/src/main.py"]) == "proj/src/"

    def test_shorter_path_does_not_overrun(self):
        assert common_prefix(["a/b/c.js", "a/d.js"]) == "a/"

    def test_empty(self):
        assert common_prefix([]) == ""


class TestNormalize:
    """Tests for normalize."""

    def test_strips_prefix(self):
        corpus = normalize({"proj/a.js": "A", "proj/lib/b.js": "B"})
        assert corpus.paths == ["a.js", "lib/b.js"]
        assert corpus["lib/b.js"] == "B"

    def test_preserves_order_and_content(self):
        raw = {"x/3.js": "3", "x/1.js": "1", "x/2.js": "2"}
        corpus = normalize(raw)
        assert corpus.paths == ["3.js", "1.js", "2.js"]
        assert list(corpus.values()) == ["3", "1", "2"]

    def test_no_prefix_is_identity(self):
        raw = {"a.js": "1", "b/c.js": "2"}
        assert dict(normalize(raw)) == raw

    def test_no_path_starts_with_slash(self):
        corpus = normalize({"r/a/b.js": "", "r/a/c.js": ""})
        assert all(not path.startswith("/") and path for path in corpus)

    def test_empty_input(self):
        assert len(normalize({})) == 0
