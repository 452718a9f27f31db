"""Supported practice languages, in the order the selector shows them."""

from .models import LanguageDescriptor

DEFAULT_LANGUAGE = "english"

LANGUAGES = (
    LanguageDescriptor(
        "english", "English", "🇺🇸", "witty British charm with American confidence"
    ),
    LanguageDescriptor(
        "french", "Français", "🇫🇷", "sophisticated Parisian elegance and romantic passion"
    ),
    LanguageDescriptor(
        "german", "Deutsch", "🇩🇪", "direct yet charming German efficiency with playful humor"
    ),
    LanguageDescriptor(
        "hindi", "हिंदी", "🇮🇳", "warm Indian hospitality with poetic expressions"
    ),
    LanguageDescriptor(
        "italian", "Italiano", "🇮🇹", "passionate Italian romance with expressive gestures"
    ),
    LanguageDescriptor(
        "portuguese", "Português", "🇧🇷", "warm Brazilian friendliness with European sophistication"
    ),
    LanguageDescriptor(
        "spanish", "Español", "🇪🇸", "passionate Spanish flair with Latin American warmth"
    ),
    LanguageDescriptor(
        "thai", "ไทย", "🇹🇭", "gentle Thai politeness with subtle playful teasing"
    ),
)

_BY_ID = {lang.id: lang for lang in LANGUAGES}


def list_languages():
    return LANGUAGES


def language_ids():
    return [lang.id for lang in LANGUAGES]


def resolve(language_id):
    if not isinstance(language_id, str):
        return None
    return _BY_ID.get(language_id.strip().lower())
