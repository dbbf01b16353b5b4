"""Rendering of feature specifications."""
from .markdown import export_feature_markdown, feature_file_name, render_feature_markdown

__all__ = ["export_feature_markdown", "feature_file_name", "render_feature_markdown"]
