"""Editor-side collaborators: document snapshots and language detection."""

from .document_model import CursorPosition, DocumentSnapshot
from .languages import detect_language

__all__ = ["CursorPosition", "DocumentSnapshot", "detect_language"]
