"""
Coarse token estimate used for chunk sizing and context budgets.

Not a tokenizer: text containing CJK ideographs is counted at ~1.5 chars per
token, anything else at ~4 chars per token.
"""
from __future__ import annotations

import math
import re

_CJK_RE = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]")

CJK_CHARS_PER_TOKEN = 1.5
LATIN_CHARS_PER_TOKEN = 4
# Chunk/overlap sizes are configured in tokens and converted with this ratio.
CHARS_PER_TOKEN = 4


def contains_cjk(text: str) -> bool:
    return bool(_CJK_RE.search(text))


def estimate_tokens(text: str) -> int:
    if not text:
        return 0
    ratio = CJK_CHARS_PER_TOKEN if contains_cjk(text) else LATIN_CHARS_PER_TOKEN
    return math.ceil(len(text) / ratio)
