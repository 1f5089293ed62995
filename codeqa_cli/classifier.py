"""Decide which repository paths belong in the corpus."""

from __future__ import annotations

from typing import FrozenSet, Iterable, Optional

# File extensions to include
CODE_EXTENSIONS: FrozenSet[str] = frozenset({
    "js", "jsx", "ts", "tsx", "py", "rb", "go", "java", "kt", "swift",
    "c", "cpp", "h", "hpp", "cs", "php", "rs", "scala", "sh", "bash",
    "yaml", "yml", "json", "toml", "env", "md", "mdx", "sql", "graphql",
    "html", "css", "scss", "sass", "vue", "svelte", "astro",
    "dockerfile", "makefile", "gitignore",
})

# Directories whose whole subtree is skipped
SKIP_DIRS: FrozenSet[str] = frozenset({
    "node_modules", ".git", "__pycache__", ".next", "dist", "build",
    ".venv", "venv", "env", ".env", "coverage", ".nyc_output",
    "vendor", ".cargo", "target", ".gradle",
})


def get_extension(filename: str) -> str:
    """Lowercased text after the last dot, or ``""`` when there is none."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


class PathClassifier:
    """Pure predicate over repository-relative paths."""

    def __init__(
        self,
        extensions: Optional[Iterable[str]] = None,
        skip_dirs: Optional[Iterable[str]] = None,
    ) -> None:
        self.extensions = frozenset(
            ext.lower().lstrip(".") for ext in (extensions if extensions is not None else CODE_EXTENSIONS)
        )
        self.skip_dirs = frozenset(
            name.lower() for name in (skip_dirs if skip_dirs is not None else SKIP_DIRS)
        )

    def includes(self, path: str) -> bool:
        parts = path.split("/")
        # Check if any parent dir should be skipped
        for part in parts[:-1]:
            if part.lower() in self.skip_dirs:
                return False

        filename = parts[-1]
        if not filename or filename.startswith("."):
            return False

        # Known extension, or no extension at all (Dockerfile, Makefile, LICENSE)
        return get_extension(filename) in self.extensions or "." not in filename

    __call__ = includes


DEFAULT_CLASSIFIER = PathClassifier()


def includes(path: str) -> bool:
    """Module-level shortcut for the default classifier."""
    return DEFAULT_CLASSIFIER.includes(path)
