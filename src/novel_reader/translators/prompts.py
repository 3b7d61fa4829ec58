# SPDX-License-Identifier: Apache-2.0
"""Prompt templates for LLM translation backends."""

from __future__ import annotations

# Language code to full name mapping for prompts
LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "ja": "Japanese",
}

HINDI_FICTION_PROMPT = (
    "Translate the following fiction text into casual, daily-spoken Hindi "
    "(Hindustani). Do NOT use complex Sanskrit words. Text: \"{text}\""
)

DEFAULT_PROMPT = 'Translate the following text into {language}:\n\n"{text}"'


def language_name(lang_code: str) -> str:
    """Convert language code to full name, or return it unchanged."""
    return LANGUAGE_NAMES.get(lang_code.lower(), lang_code)


def build_prompt(text: str, target_lang: str) -> str:
    """Wrap page text in the prompt for the target language.

    Args:
        text: Source text.
        target_lang: Target language code.

    Returns:
        Prompt text for a single-shot generation request.
    """
    if target_lang.lower() == "hi":
        return HINDI_FICTION_PROMPT.format(text=text)
    return DEFAULT_PROMPT.format(language=language_name(target_lang), text=text)
