"""Codenook: an editor shell with AI chat and inline code completions."""

__version__ = "0.1.0"
