"""Prompt templates for inline completions and the chat assistant."""

from __future__ import annotations

from typing import Any

from ..completion.messages import CompletionRequest

CURSOR_MARKER = "<CURSOR>"
COMPLETION_TOKEN_BUDGET = 256


def completion_system_prompt() -> str:
    return (
        "You are an inline code completion engine embedded in a code editor. "
        f"The user's file is shown with the cursor marked as {CURSOR_MARKER}. "
        "Reply with ONLY the text that should be inserted at the cursor: no explanations, "
        "no markdown, no code fences, and never repeat code that already exists before or "
        "after the cursor. If nothing useful can be inserted, reply with an empty message."
    )


def build_completion_messages(request: CompletionRequest) -> list[dict[str, Any]]:
    """Build the chat messages asking the model to fill in ``request``'s cursor."""

    language = request.language or "plaintext"
    document = f"{request.text_before_cursor}{CURSOR_MARKER}{request.text_after_cursor}"
    user_prompt = f"Language: {language}\n\n{document}"
    return [
        {"role": "system", "content": completion_system_prompt()},
        {"role": "user", "content": user_prompt},
    ]


def chat_system_prompt() -> str:
    """System prompt for the chat panel assistant.

    The chat panel renders markdown, so answers are asked to use fenced code
    blocks with language tags and short paragraphs.
    """

    return """You are a helpful AI assistant for a code editor. Help the user with their coding questions and provide clear, concise answers.

Formatting:
- Use **bold text** for important concepts, keywords, and emphasis
- Use *italic text* for subtle emphasis and definitions
- Use `inline code` for technical terms, function names, and short code snippets
- Put code examples in fenced markdown code blocks with a language tag (javascript, typescript, python, html, css, etc.)
- Add visual separators like "---" between sections
- If the entire response is code, format it as a single code block
- If mixing text and code, separate them clearly with line breaks

Layout:
- Keep text lines reasonably short (max 80-100 characters)
- Break long explanations into shorter paragraphs and use bullet points
- Split very long code examples into smaller, focused snippets
- Use clear section headers to improve navigation"""


def build_chat_messages(message: str) -> list[dict[str, Any]]:
    return [
        {"role": "system", "content": chat_system_prompt()},
        {"role": "user", "content": message},
    ]
