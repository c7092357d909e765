"""
Presentation fixes for upstream text: mis-decoded characters and casing.

The substitution table is best effort. Classification rules never depend on
it beyond being run on already repaired text.
"""

import re

# UTF-8 bytes that were decoded as Latin-1 upstream. Whole words come first so
# they are replaced before their individual characters.
MOJIBAKE_FIXES = [
    ("TÃ¼rkiye", "Türkiye"),
    ("CÃ´te d'Ivoire", "Côte d'Ivoire"),
    ("CuraÃ§ao", "Curaçao"),
    ("RÃ©union", "Réunion"),
    ("SÃ£o TomÃ©", "São Tomé"),
    ("Ã…land", "Åland"),
    ("Ã–sterreich", "Österreich"),
    ("fÃ¼r", "für"),
    ("Ã¤", "ä"),
    ("Ã¶", "ö"),
    ("Ã¼", "ü"),
    ("Ã©", "é"),
    ("Ã¨", "è"),
    ("Ã¢", "â"),
    ("Ã®", "î"),
    ("Ã´", "ô"),
    ("Ã»", "û"),
    ("Ã±", "ñ"),
    ("Ã§", "ç"),
    ("Ã ", "à"),
]

LOWERCASE_WORDS = {"and", "or", "the", "of", "in", "on", "at", "to", "for", "with", "a", "an"}
UPPERCASE_WORDS = {"uk", "usa", "us", "eu", "uae", "gmo", "dna", "bse", "cjd", "stec"}

_WHITESPACE = re.compile(r"\s+")


def repair_text(text: str) -> str:
    """Replace known mis-decoded character sequences."""
    for broken, correct in MOJIBAKE_FIXES:
        if broken in text:
            text = text.replace(broken, correct)
    return text


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def title_case(text: str) -> str:
    """Title case a phrase, keeping short joining words lower and acronyms upper."""
    words = collapse_whitespace(text).lower().split(" ")
    result = []
    for index, word in enumerate(words):
        if not word:
            continue
        if word in UPPERCASE_WORDS:
            result.append(word.upper())
        elif index > 0 and word in LOWERCASE_WORDS:
            result.append(word)
        else:
            result.append(word[0].upper() + word[1:])
    return " ".join(result)


def is_shouting(text: str) -> bool:
    """True for ALL CAPS text long enough to be a phrase rather than an acronym."""
    return len(text) > 3 and text == text.upper() and text != text.lower()
