"""Prompt templates for the upstream translation model."""

# (English, Burmese, Chinese)
COMMON_TERMS: tuple[tuple[str, str, str], ...] = (
    ("Withdrawal", "ငွေထုတ်", "提款"),
    ("Deposit", "ငွေသွင်း", "存款"),
    ("Balance", "လက်ကျန်ငွေ", "余额"),
    ("Account", "အကောင့်", "账户"),
    ("Processing", "လုပ်ဆောင်နေ", "处理中"),
    ("Pending", "စောင့်ဆိုင်းနေ", "待处理"),
    ("Bonus", "ဘောနပ်စ်", "红利"),
    ("Problem/Issue", "ပြဿနာ", "问题"),
    ("Help/Support", "အကူအညီ", "帮助"),
    ("Customer Service", "ဖောက်သည်ဝန်ဆောင်မှု", "客服"),
    ("Verification", "အတည်ပြု", "验证"),
    ("Transaction", "ငွေလွှဲ", "交易"),
)

TRANSLATION_RULES = """- Auto-detect source language (Burmese → Chinese or Chinese → Burmese)
- Preserve the original tone, emotion, and intent
- Use natural, conversational language appropriate for customer service
- Handle mixed languages smoothly
- Keep numbers, dates, and usernames unchanged
- Return ONLY the translation without explanations or labels"""


def build_translation_prompt(source_text: str) -> str:
    """Build the customer-service translation prompt for ``source_text``."""
    terms = "\n".join(
        f"• {english}: {burmese} / {chinese}" for english, burmese, chinese in COMMON_TERMS
    )
    return (
        "Translate naturally between Burmese (Myanmar) and Chinese "
        "for customer service communication.\n\n"
        f"**Translation Rules:**\n{TRANSLATION_RULES}\n\n"
        f"**Common Terms Reference:**\n{terms}\n\n"
        f'Translate: "{source_text}"'
    )
