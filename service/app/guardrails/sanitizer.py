"""Text sanitizer for chat messages and provider replies.

Strips markup so only plain text survives. Script and iframe blocks are
dropped together with their content, and the usual injection vectors
(``javascript:`` URIs, inline ``on*=`` handlers, unclosed tag openers)
are removed even when they appear outside a well-formed tag.

Every pass only deletes characters, and passes repeat until nothing changes,
so the result is never longer than the input and sanitizing twice is the
same as sanitizing once.
"""

import re

_DANGEROUS_BLOCK = re.compile(
    r"<\s*(script|iframe)\b[^>]*>.*?<\s*/\s*\1\s*>",
    re.IGNORECASE | re.DOTALL,
)
# Openers or closers that never got a matching partner, including ones
# missing their closing '>'.
_DANGEROUS_TAG = re.compile(r"<\s*/?\s*(?:script|iframe)\b[^<>]*>?", re.IGNORECASE)
_TAG = re.compile(r"</?[a-zA-Z!?][^<>]*>")
# Tag openers that never close: run to the next "<" or the end of the text.
_UNCLOSED_TAG = re.compile(r"</?[a-zA-Z!?][^<>]*(?=<|\Z)")
_JS_URI = re.compile(r"javascript\s*:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"\bon[a-z]+\s*=", re.IGNORECASE)

_PASSES: list[re.Pattern[str]] = [
    _DANGEROUS_BLOCK,
    _DANGEROUS_TAG,
    _TAG,
    _UNCLOSED_TAG,
    _JS_URI,
    _EVENT_HANDLER,
]


def sanitize(raw: str) -> str:
    """Return ``raw`` with markup and script vectors removed."""
    if not raw:
        return ""

    text = raw
    while True:
        previous = text
        for pattern in _PASSES:
            text = pattern.sub("", text)
        if text == previous:
            return text
