from .localization import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES, get_text, resolve_language

__all__ = ["DEFAULT_LANGUAGE", "SUPPORTED_LANGUAGES", "get_text", "resolve_language"]
