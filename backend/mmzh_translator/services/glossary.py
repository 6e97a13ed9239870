"""Static Burmese/Chinese term table used when upstream and cache both fail."""

PARTIAL_TRANSLATION_NOTE = "(အခြေခံဘာသာပြန်ချက် / 基础翻译)"

# Order matters: substring lookup returns the first entry contained in the text.
DEFAULT_TERMS: tuple[tuple[str, str], ...] = (
    ("ငွေထုတ်", "提款 / Withdrawal"),
    ("ငွေသွင်း", "存款 / Deposit"),
    ("လက်ကျန်ငွေ", "余额 / Balance"),
    ("အကောင့်", "账户 / Account"),
    ("ပြဿနာ", "问题 / Problem"),
    ("အကူအညီ", "帮助 / Help"),
    ("စောင့်ဆိုင်းနေ", "等待中 / Waiting"),
    ("လုပ်ဆောင်နေ", "处理中 / Processing"),
    ("提款", "ငွေထုတ် / Withdrawal"),
    ("存款", "ငွေသွင်း / Deposit"),
    ("余额", "လက်ကျန်ငွေ / Balance"),
    ("账户", "အကောင့် / Account"),
    ("问题", "ပြဿနာ / Problem"),
    ("帮助", "အကူအညီ / Help"),
    ("等待", "စောင့်ဆိုင်း / Wait"),
    ("处理", "လုပ်ဆောင် / Process"),
)


class FallbackGlossary:
    """Exact-then-substring lookup over an ordered term table."""

    def __init__(self, terms: tuple[tuple[str, str], ...] = DEFAULT_TERMS) -> None:
        self._terms = terms
        self._exact = dict(terms)

    def __len__(self) -> int:
        return len(self._terms)

    def lookup(self, text: str) -> str | None:
        """Return a basic translation for ``text``, or None.

        Substring hits are annotated as partial translations.
        """
        stripped = text.strip()
        if not stripped:
            return None

        exact = self._exact.get(stripped)
        if exact is not None:
            return exact

        lowered = stripped.lower()
        for term, translation in self._terms:
            if term in text or term.lower() in lowered:
                return f"{translation} {PARTIAL_TRANSLATION_NOTE}"

        return None
