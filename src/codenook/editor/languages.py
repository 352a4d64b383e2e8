"""Map file names to the language identifiers used by the editor widget."""

from __future__ import annotations

from pathlib import PurePath

__all__ = ["EXTENSION_LANGUAGES", "DEFAULT_LANGUAGE", "detect_language"]

DEFAULT_LANGUAGE = "plaintext"

EXTENSION_LANGUAGES: dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "c": "c",
    "cpp": "cpp",
    "cs": "csharp",
    "php": "php",
    "json": "json",
    "html": "html",
    "css": "css",
    "md": "markdown",
    "sh": "shell",
    "go": "go",
    "rs": "rust",
    "swift": "swift",
    "xml": "xml",
    "yml": "yaml",
    "yaml": "yaml",
    "txt": "plaintext",
}


def detect_language(file_name: str | PurePath | None) -> str:
    """Return the language id for ``file_name`` based on its extension."""

    if not file_name:
        return DEFAULT_LANGUAGE
    suffix = PurePath(file_name).suffix.lstrip(".").lower()
    return EXTENSION_LANGUAGES.get(suffix, DEFAULT_LANGUAGE)
