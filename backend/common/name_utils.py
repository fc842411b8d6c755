"""Device name normalization utilities."""

import re
import unicodedata
from typing import Callable, Optional

NameNormalizer = Callable[[Optional[str]], str]

_NON_ALNUM_RE = re.compile(r"[\W_]+", re.UNICODE)


def normalize_device_name(raw_name: Optional[str]) -> str:
    """
    Normalize a device display name into a comparison key.

    Steps:
    1. Unicode NFKC folding (full-width digits, ligatures)
    2. Case folding
    3. Replace "+" with "plus" so "Galaxy S24+" and "Galaxy S24 Plus" collide
    4. Drop everything that is not a letter or a digit

    Example: "iPhone 15 Pro (128GB)" -> "iphone15pro128gb"

    Args:
        raw_name: Display name as scraped, may be None

    Returns:
        Normalized name, empty string when nothing comparable is left
    """
    if not raw_name:
        return ""

    name = unicodedata.normalize("NFKC", raw_name).casefold()
    name = name.replace("+", "plus")
    return _NON_ALNUM_RE.sub("", name)
