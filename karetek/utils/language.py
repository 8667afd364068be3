import re

ARABIC_BLOCK = re.compile(r"[\u0600-\u06FF]")
ARABIC_LETTERS = re.compile(r"[\u0621-\u063A\u0641-\u064A]")
# Letters used in Urdu but not in Arabic: tteh, peh, tcheh, ddal, rreh, jeh,
# keheh, gaf, noon ghunna, heh doachashmee, farsi yeh
URDU_LETTERS = re.compile(r"[\u0679\u067E\u0686\u0688\u0691\u0698\u06A9\u06AF\u06BA\u06BE\u06CC]")
CJK_BLOCK = re.compile(r"[\u4E00-\u9FFF]")

FRENCH_CHARS = set("àâäæçéèêëïîôùûüÿœÀÂÄÆÇÉÈÊËÏÎÔÙÛÜŸŒ")
SPANISH_CHARS = set("áéíóúñüÁÉÍÓÚÑÜ¿¡")
GERMAN_CHARS = set("äöüßÄÖÜ")

def has_arabic_script(text: str) -> bool:
    return bool(ARABIC_BLOCK.search(text))

def detect_language(text: str) -> str:
    """Guess a language code from the scripts and accented letters in ``text``.

    Checks run in a fixed order, so text mixing several scripts resolves
    to the first match: Arabic script (then Urdu vs Arabic by letter
    counts), CJK, then French, Spanish and German accented letters.
    Anything else is English.
    """
    if has_arabic_script(text):
        arabic = len(ARABIC_LETTERS.findall(text))
        urdu = len(URDU_LETTERS.findall(text))
        return "ur" if urdu > arabic else "ar"

    if CJK_BLOCK.search(text):
        return "zh"

    chars = set(text)
    if chars & FRENCH_CHARS:
        return "fr"
    if chars & SPANISH_CHARS:
        return "es"
    if chars & GERMAN_CHARS:
        return "de"

    return "en"
