"""Tests for the path classifier."""

import pytest

from codeqa_cli.classifier import CODE_EXTENSIONS, PathClassifier, get_extension, includes


class TestGetExtension:
    """Tests for get_extension."""

    def test_lowercases(self):
        assert get_extension("App.TSX") == "tsx"

    def test_last_dot_wins(self):
        assert get_extension("archive.tar.gz") == "gz"

    def test_no_dot(self):
        assert get_extension("Makefile") == ""


class TestIncludes:
    """Tests for the default include/skip rules."""

    @pytest.mark.parametrize("path", [
        "src/index.js",
        "app/models/user.rb",
        "cmd/main.go",
        "lib/Parser.JAVA",
        "docs/guide.md",
        "config/settings.yaml",
        "Dockerfile",
        "scripts/Makefile",
        "LICENSE",
    ])
    def test_code_files_are_included(self, path):
        assert includes(path)

    @pytest.mark.parametrize("path", [
        "node_modules/react/index.js",
        "web/node_modules/lodash/lodash.js",
        ".git/config",
        "pkg/__pycache__/mod.py",
        "dist/bundle.js",
        "venv/lib/site.py",
        "vendor/github.com/x/y.go",
        "target/debug/build.rs",
    ])
    def test_skip_dirs_exclude_whole_subtree(self, path):
        assert not includes(path)

    def test_skip_dir_match_is_case_insensitive(self):
        assert not includes("Node_Modules/pkg/index.js")

    def test_skip_dir_only_applies_to_directories(self):
        """A file literally named like a skipped directory is still judged by extension."""
        assert includes("src/build")

    @pytest.mark.parametrize("path", [
        "assets/logo.png",
        "fonts/inter.woff2",
        "bin/tool.exe",
        "data/archive.zip",
    ])
    def test_unknown_extensions_are_excluded(self, path):
        assert not includes(path)

    def test_dotfiles_are_excluded(self):
        assert not includes(".eslintrc")
        assert not includes("src/.env")

    def test_empty_filename(self):
        assert not includes("src/")


class TestPathClassifier:
    """Tests for custom classifiers."""

    def test_custom_extensions(self):
        classifier = PathClassifier(extensions=[".py"])
        assert classifier.includes("a/b.py")
        assert not classifier.includes("a/b.js")

    def test_custom_skip_dirs(self):
        classifier = PathClassifier(skip_dirs=["fixtures"])
        assert not classifier.includes("tests/fixtures/data.json")
        assert classifier.includes("node_modules/x.js")

    def test_callable(self):
        classifier = PathClassifier()
        assert classifier("src/app.ts") is True

    def test_default_extension_set_is_frozen(self):
        assert isinstance(CODE_EXTENSIONS, frozenset)
        assert "py" in CODE_EXTENSIONS
