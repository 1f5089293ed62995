"""CodeQA CLI: ask questions about a codebase and get answers with line-level proof."""

__version__ = "1.0.0"
