"""Rewrite prompt template and model output cleanup."""

import re

REWRITE_PROMPT = """You are tasked with rewriting the following text according to the user's instructions. Follow the instructions precisely while maintaining the original meaning and important information.

User Instructions: {instructions}

Original Text:
\"\"\"
{text}
\"\"\"

Please rewrite the text according to the instructions. Return only the rewritten text without any explanations, quotation marks, or markdown formatting."""

# Markdown and markup symbols models tend to add despite being asked not to.
MARKUP_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\*\*"), ""),  # bold
    (re.compile(r"\*"), ""),  # italic
    (re.compile(r"#{1,6}\s?"), ""),  # headers
    (re.compile(r"`{1,3}"), ""),  # code
    (re.compile(r"^\s*[-*+]\s+", re.MULTILINE), ""),  # bullets
    (re.compile(r"^\s*\d+\.\s+", re.MULTILINE), ""),  # numbered lists
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),  # links
    (re.compile(r"^\s*>\s?", re.MULTILINE), ""),  # blockquotes
    (re.compile(r"\|"), " "),  # table separators
    (re.compile(r"---+"), ""),  # horizontal rules
    (re.compile(r"\n{3,}"), "\n\n"),
]

# Parenthesised meta notes a model sometimes appends after the rewrite.
TRAILING_NOTE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\(.*continues.*\)$",
        r"\(.*debate.*continues.*\)$",
        r"\(.*reader.*to.*weigh.*\)$",
        r"\(.*leaving.*reader.*\)$",
        r"\(.*end.*of.*rewrite.*\)$",
        r"\(.*note:.*\)$",
        r"\(.*commentary.*\)$",
        r"\(.*analysis.*\)$",
    )
]

ORPHANED_PAREN = re.compile(r"\s*\.\s*\)$")


def build_rewrite_prompt(text: str, instructions: str) -> str:
    """Fill the rewrite prompt template for one chunk."""
    return REWRITE_PROMPT.format(instructions=instructions, text=text)


def remove_markup_symbols(text: str) -> str:
    """Strip markdown symbols and trailing meta notes from model output.

    Args:
        text: Raw model reply.

    Returns:
        Plain text suitable for splicing back into a document.
    """
    cleaned = text
    for pattern, replacement in MARKUP_PATTERNS:
        cleaned = pattern.sub(replacement, cleaned)
    cleaned = cleaned.strip()

    for pattern in TRAILING_NOTE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = ORPHANED_PAREN.sub(".", cleaned)

    return cleaned.strip()
