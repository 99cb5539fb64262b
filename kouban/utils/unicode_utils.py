"""
Kouban Unicode Utilities

Text normalization and Unicode handling for consistent text processing.
"""

import re
import unicodedata


def normalize_text(text: str, form: str = 'NFKC') -> str:
    """
    Normalize Unicode text to a standard form.

    NFKC folds full-width digits, letters and brackets into their
    half-width forms, so "田中（２５）" and "田中(25)" compare equal.

    Args:
        text: Input text
        form: Unicode normalization form (NFC, NFD, NFKC, NFKD)

    Returns:
        Normalized text
    """
    return unicodedata.normalize(form, text)


def clean_unicode(text: str) -> str:
    """
    Clean problematic Unicode characters from text.

    Removes:
    - Zero-width characters
    - Control characters (except newlines and tabs)
    - Replacement characters

    Args:
        text: Input text

    Returns:
        Cleaned text
    """
    text = re.sub(r'[\u200b\u200c\u200d\ufeff]', '', text)
    text = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)
    return text.replace('\ufffd', '')


def normalize_label(text: str) -> str:
    """Normalize a short label (name, number) for comparison."""
    return re.sub(r'\s+', ' ', normalize_text(clean_unicode(text))).strip()
