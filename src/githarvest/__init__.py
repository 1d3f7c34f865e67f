"""GitHarvest — commit history, changed files, and diffs for review pipelines."""

__version__ = "0.1.0"
