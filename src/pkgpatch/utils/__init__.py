"""Small shared helpers."""

from .slug import package_path_segments, slugify

__all__ = ["package_path_segments", "slugify"]
