"""
Heuristic Persian/Arabic to Latin transliteration.

Whole phrases from a curated word table are translated to their English
meaning so generated keys stay readable (``'ذخیره'`` -> ``'save'``). Anything
else falls back to a letter-by-letter mapping.
"""
from typing import Dict, List, Optional, Tuple

# Common UI vocabulary, mapped to English words rather than letters.
WORD_TABLE: Dict[str, str] = {
    'سلام': 'hello', 'خوش آمدید': 'welcome', 'ورود': 'login', 'خروج': 'logout',
    'ثبت نام': 'register', 'رمز عبور': 'password', 'نام کاربری': 'username',
    'تایید': 'confirm', 'لغو': 'cancel', 'ذخیره': 'save', 'حذف': 'delete',
    'ویرایش': 'edit', 'جدید': 'new', 'قدیمی': 'old', 'بعدی': 'next', 'قبلی': 'previous',
    'صفحه': 'page', 'فهرست': 'list', 'جستجو': 'search', 'فیلتر': 'filter',
    'تنظیمات': 'settings', 'پروفایل': 'profile', 'حساب کاربری': 'account',
    'اطلاعات': 'information', 'جزئیات': 'details', 'توضیحات': 'description',
    'نام': 'name', 'نام خانوادگی': 'lastname', 'ایمیل': 'email', 'تلفن': 'phone',
    'آدرس': 'address', 'شهر': 'city', 'کشور': 'country', 'تاریخ': 'date',
    'زمان': 'time', 'ساعت': 'hour', 'دقیقه': 'minute', 'روز': 'day', 'ماه': 'month',
    'سال': 'year', 'امروز': 'today', 'دیروز': 'yesterday', 'فردا': 'tomorrow',
    'خطا': 'error', 'موفقیت': 'success', 'هشدار': 'warning', 'اطلاع': 'info',
    'بله': 'yes', 'خیر': 'no', 'باشه': 'ok', 'باطل': 'cancel',
}

CHARACTER_TABLE: Dict[str, str] = {
    # Persian
    'ا': 'a', 'آ': 'aa', 'ب': 'b', 'پ': 'p', 'ت': 't', 'ث': 's', 'ج': 'j', 'چ': 'ch',
    'ح': 'h', 'خ': 'kh', 'د': 'd', 'ذ': 'z', 'ر': 'r', 'ز': 'z', 'ژ': 'zh', 'س': 's',
    'ش': 'sh', 'ص': 's', 'ض': 'z', 'ط': 't', 'ظ': 'z', 'ع': 'a', 'غ': 'gh', 'ف': 'f',
    'ق': 'gh', 'ک': 'k', 'گ': 'g', 'ل': 'l', 'م': 'm', 'ن': 'n', 'و': 'v', 'ه': 'h',
    'ی': 'i', 'ء': '', 'ئ': 'y', 'ؤ': 'v',
    # Arabic
    'ك': 'k', 'ي': 'y', 'ة': 'h', 'أ': 'a', 'إ': 'e', 'ى': 'a',
}


class Transliterator:
    """
    Maps source-script text to Latin text.

    The phrase table is ordered by length once, at construction, so the
    longest entry always wins when phrases overlap.
    """

    def __init__(self, word_table: Optional[Dict[str, str]] = None,
                 character_table: Optional[Dict[str, str]] = None):
        self.word_table = dict(WORD_TABLE if word_table is None else word_table)
        self.character_table = dict(CHARACTER_TABLE if character_table is None else character_table)

        # Single characters in the word table behave like character mappings.
        phrases = {}
        for source, target in self.word_table.items():
            if len(source) > 1:
                phrases[source] = target
            else:
                self.character_table.setdefault(source, target)
        self._phrases: List[Tuple[str, str]] = sorted(
            phrases.items(), key=lambda item: len(item[0]), reverse=True
        )
        self._exact: Dict[str, str] = {source.lower(): target for source, target in self._phrases}

    def is_known_phrase(self, text: str) -> bool:
        """Return True if ``text`` is exactly one multi-character table entry."""
        return text.strip().lower() in self._exact

    def transliterate(self, text: str) -> str:
        """
        Transliterate normalized source text.

        Args:
            text (str): Text already passed through ``normalize_source_text``.

        Returns:
            str: Latin text. Characters without a mapping are passed through.
        """
        exact = self._exact.get(text.lower())
        if exact is not None:
            return exact

        result = text
        for source, target in self._phrases:
            if source in result:
                result = result.replace(source, target)

        return ''.join(self.character_table.get(char, char) for char in result)
