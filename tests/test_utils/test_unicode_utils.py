"""Tests for kouban/utils/unicode_utils.py"""

from kouban.utils.unicode_utils import clean_unicode, normalize_label, normalize_text


class TestUnicodeUtils:

    def test_full_width_folds(self):
        assert normalize_text("田中（２５）") == "田中(25)"

    def test_clean_removes_zero_width(self):
        assert clean_unicode("田\u200b中\ufeff") == "田中"

    def test_normalize_label_collapses_space(self):
        assert normalize_label("  田中\u3000 太郎 ") == "田中 太郎"
