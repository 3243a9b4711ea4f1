"""LLM input sanitization for prompt injection prevention.

Form answers are free text written by customers and go straight into the
plan prompt. Role markers and instruction-override phrases are replaced
with visible placeholders before that happens.
"""

import re
import unicodedata

# Invisible characters that can split a keyword to dodge the patterns below
_ZERO_WIDTH_PATTERN = re.compile(
    "["
    "\u00ad"  # Soft hyphen
    "\u200b-\u200f"  # Zero-width space/joiners, LRM, RLM
    "\u202a-\u202e"  # BiDi embedding controls
    "\u2060-\u2064"  # Word joiner, invisible operators
    "\u2066-\u2069"  # BiDi isolate controls
    "\ufeff"  # BOM
    "]"
)

_CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_REPLACEMENT_TAG = "[TAG]"
_REPLACEMENT_FILTERED = "[FILTERED]"

# (pattern, replacement, flags)
_INJECTION_PATTERNS: list[tuple[str, str, int]] = [
    # Role prefixes at line start
    (
        r"^\s*(system|assistant|human)\s*:",
        _REPLACEMENT_FILTERED + ":",
        re.IGNORECASE | re.MULTILINE,
    ),
    # XML and ChatML role tags
    (r"<\s*/?\s*(system|user|assistant)\s*>", _REPLACEMENT_TAG, re.IGNORECASE),
    (r"<\|(system|user|assistant|im_start|im_end)\|>", _REPLACEMENT_TAG, re.IGNORECASE),
    (r"\[/?INST\]", _REPLACEMENT_FILTERED, re.IGNORECASE),
    # Instruction overrides
    (
        r"ignore\s+(all\s+)?(the\s+)?(previous|prior|above)\s+instructions?",
        _REPLACEMENT_FILTERED,
        re.IGNORECASE,
    ),
    (
        r"disregard\s+(all\s+)?(prior|previous|above)",
        _REPLACEMENT_FILTERED,
        re.IGNORECASE,
    ),
    (r"forget\s+everything", _REPLACEMENT_FILTERED, re.IGNORECASE),
    (r"new\s+instructions?\s*:", _REPLACEMENT_FILTERED + ":", re.IGNORECASE),
]

_COMPILED_PATTERNS = [
    (re.compile(pattern, flags), replacement)
    for pattern, replacement, flags in _INJECTION_PATTERNS
]


def sanitize_llm_input(text: str) -> str:
    """Sanitize customer-provided text before embedding it in a prompt.

    Args:
        text: Raw form answer or profile block.

    Returns:
        Text with compatibility forms folded (NFKC), invisible and control
        characters removed, and injection patterns replaced.
    """
    if not text:
        return text

    result = unicodedata.normalize("NFKC", text)
    result = _ZERO_WIDTH_PATTERN.sub("", result)
    result = _CONTROL_CHAR_PATTERN.sub("", result)

    for pattern, replacement in _COMPILED_PATTERNS:
        result = pattern.sub(replacement, result)

    return result
