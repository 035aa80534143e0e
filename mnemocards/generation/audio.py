"""
Pronunciation audio lookup.

English words are looked up in the free dictionary API; everything else (and
English misses) falls back to a Google Translate TTS URL.
"""
import logging
from typing import Optional, Tuple
from urllib.parse import quote, urlencode

import httpx

logger = logging.getLogger(__name__)

FREE_DICTIONARY_API = "https://api.dictionaryapi.dev/api/v2/entries"
GOOGLE_TTS_URL = "https://translate.google.com/translate_tts"

SUPPORTED_LANGUAGES = {"en", "ru", "de", "fr", "es", "nl"}


def google_tts_url(word: str, language: str) -> str:
    query = urlencode({"ie": "UTF-8", "client": "tw-ob", "tl": language, "q": word})
    return f"{GOOGLE_TTS_URL}?{query}"


async def _dictionary_audio(word: str, client: httpx.AsyncClient) -> Optional[str]:
    try:
        response = await client.get(f"{FREE_DICTIONARY_API}/en/{quote(word)}", timeout=5.0)
    except httpx.HTTPError as e:
        logger.error(f"Free Dictionary API error: {e}")
        return None
    if response.status_code != 200:
        return None

    try:
        data = response.json()
    except ValueError as e:
        logger.error(f"Free Dictionary API returned invalid JSON: {e}")
        return None
    if not data or not isinstance(data, list):
        return None
    for phonetic in data[0].get("phonetics", []):
        if phonetic.get("audio"):
            return phonetic["audio"]
    return None


async def fetch_pronunciation(
    word: str,
    language: str = "en",
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[str, str]:
    """
    Find a pronunciation audio URL for a word.

    Returns:
        (audio_url, source) where source is "free-dictionary-api" or
        "google-tts-fallback".
    """
    lang = language if language in SUPPORTED_LANGUAGES else "en"

    if lang == "en":
        if client is None:
            async with httpx.AsyncClient() as own_client:
                audio_url = await _dictionary_audio(word, own_client)
        else:
            audio_url = await _dictionary_audio(word, client)
        if audio_url:
            return audio_url, "free-dictionary-api"

    return google_tts_url(word, lang), "google-tts-fallback"
