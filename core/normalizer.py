"""
normalizer.py
--------------
Merchant name canonicalization.

Bank descriptors for the same service vary wildly ("NETFLIX.COM",
"Netflix Inc 84756321", "PAYPAL *NETFLIX"). Every comparison in the engine
runs on the normalized form produced here.
"""

import re
from functools import lru_cache
from typing import Iterable, Optional

from config.config_loader import get_normalizer_config


_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


@lru_cache(maxsize=32)
def _build_patterns(strip_tokens: tuple[str, ...], min_numeric_length: int) -> tuple[re.Pattern, re.Pattern]:
    tokens = "|".join(re.escape(t) for t in strip_tokens)
    token_pattern = re.compile(rf"\b(?:{tokens})\b") if tokens else re.compile(r"(?!x)x")
    numeric_pattern = re.compile(rf"\b\d{{{min_numeric_length},}}\b")
    return token_pattern, numeric_pattern


def normalize_merchant(
    name: Optional[str],
    strip_tokens: Optional[Iterable[str]] = None,
    min_numeric_length: Optional[int] = None,
) -> str:
    """
    Canonicalize a merchant name for comparison.

    Steps:
        1. Lowercase, and replace punctuation with spaces.
        2. Drop corporate / payment-processor tokens (llc, inc, paypal, ...).
        3. Drop numeric tokens of min_numeric_length+ digits (transaction ids).
        4. Collapse whitespace.

    Args:
        name: Raw merchant string. None or empty yields "".
        strip_tokens: Override the configured token list.
        min_numeric_length: Override the configured numeric token length.

    Returns:
        Normalized merchant name.
    """
    if not name:
        return ""

    if strip_tokens is None or min_numeric_length is None:
        cfg = get_normalizer_config()
        if strip_tokens is None:
            strip_tokens = cfg["strip_tokens"]
        if min_numeric_length is None:
            min_numeric_length = cfg["min_numeric_token_length"]

    token_pattern, numeric_pattern = _build_patterns(tuple(strip_tokens), int(min_numeric_length))

    text = _NON_ALNUM.sub(" ", name.lower())
    text = token_pattern.sub("", text)
    text = numeric_pattern.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


class MerchantNormalizer:
    """
    Normalizer bound to one configuration.

    Usage:
        normalizer = MerchantNormalizer(detection_config)
        normalizer("NETFLIX.COM 123456")  # -> "netflix com"
    """

    def __init__(self, config: dict | None = None):
        cfg = config["normalizer"] if config is not None else get_normalizer_config()
        self.strip_tokens = tuple(cfg["strip_tokens"])
        self.min_numeric_length = int(cfg["min_numeric_token_length"])

    def __call__(self, name: Optional[str]) -> str:
        return normalize_merchant(name, self.strip_tokens, self.min_numeric_length)
