"""
Prompt templates for the mnemonic generation steps.
"""
from typing import List, Optional

from mnemocards.cards.schemas import Anchor, PhoneticChunk, Scene, WordAnalysis


LANGUAGE_NAMES = {
    "en": "English",
    "ru": "Russian",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "nl": "Dutch",
    "kz": "Kazakh",
}

DEFAULT_NEGATIVE_PROMPT = "text, letters, watermark, blur"


def language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


CHUNKING_RULES = """Rules for phonetic chunking:
- Each chunk should be 1-3 syllables
- Chunks must be continuous and pronounceable
- Chunks should be maximally distinct from each other
- For short words (1-2 syllables), use the whole word as one chunk"""


def _custom_block(custom_instructions: Optional[str]) -> str:
    if not custom_instructions:
        return ""
    return f"\nCustom instructions: {custom_instructions}\n"


def _chunks_info(chunks: List[PhoneticChunk]) -> str:
    return "\n".join(
        f'Chunk {i}: "{c.chunk}" (IPA: {c.ipa})' for i, c in enumerate(chunks, start=1)
    )


def analysis_prompt(word: str, learning_language: str, native_language: str) -> str:
    learning = language_name(learning_language)
    native = language_name(native_language)
    return f"""You are a linguistic analysis system for a mnemonic vocabulary app.

Analyze the {learning} word "{word}" and provide:
1. Word analysis: normalized form, part of speech, IPA, translation to {native}, basic meaning, semantic class, example usage
2. Phonetic chunking: split the word into 1-3 pronounceable segments for mnemonic purposes

{CHUNKING_RULES}

Return a JSON object with this exact structure:
{{
  "analysis": {{
    "normalized_word": "string",
    "pos": "noun | verb | adjective",
    "ipa": "string",
    "translation": "string in {native}",
    "basic_meaning": "string",
    "semantic_class": "object | action | quality",
    "example_usage": "example sentence in {learning}"
  }},
  "phonetics": {{
    "ipa": "string - full IPA",
    "chunks": [{{"chunk": "string", "ipa": "string"}}]
  }}
}}

Only return valid JSON, no additional text."""


def chunking_prompt(
    word: str,
    learning_language: str,
    custom_instructions: Optional[str] = None,
    current_chunks: Optional[List[PhoneticChunk]] = None,
) -> str:
    learning = language_name(learning_language)
    current = ""
    if current_chunks:
        current = "Current chunks: " + ", ".join(c.chunk for c in current_chunks) + "\n"
    extra = f"\n- Additional requirements: {custom_instructions}" if custom_instructions else ""
    return f"""You are a phonetic chunking system for a mnemonic vocabulary app.

Split the {learning} word "{word}" into phonetic chunks for mnemonic purposes.

{current}{_custom_block(custom_instructions)}
{CHUNKING_RULES}{extra}

Return a JSON object with this structure:
{{
  "phonetics": {{
    "ipa": "string - full IPA transcription",
    "chunks": [{{"chunk": "string", "ipa": "string"}}]
  }}
}}

Only return valid JSON, no additional text."""


def anchors_prompt(
    word: str,
    chunks: List[PhoneticChunk],
    native_language: str,
    custom_instructions: Optional[str] = None,
    current_anchors: Optional[List[Anchor]] = None,
) -> str:
    native = language_name(native_language)
    current = ""
    if current_anchors:
        current = "Current anchors:\n" + "\n".join(
            f'- "{a.chunk}" -> "{a.anchor_word}"' for a in current_anchors
        ) + "\n"
    extra = f"\n5. Follow these additional requirements: {custom_instructions}" if custom_instructions else ""
    return f"""You are a phonetic association generator for a mnemonic vocabulary app.

For the word "{word}", find phonetically similar {native} words for each chunk:

{_chunks_info(chunks)}

{current}{_custom_block(custom_instructions)}
For each chunk, find 3-5 {native} words that:
1. Sound similar to the chunk (phonetic similarity matters most)
2. Are concrete, easily visualizable nouns
3. Are common, familiar words
4. Are distinct from each other{extra}

Score each candidate's phonetic_similarity from 0.0 to 1.0 (1.0 = perfect match).

Return a JSON object with this structure:
{{
  "candidates": [
    {{
      "chunk": "the original chunk",
      "candidates": [
        {{"word": "{native} word", "phonetic_similarity": 0.0, "imageable": true, "frequency": "high | medium | low"}}
      ]
    }}
  ]
}}

Sort candidates by phonetic_similarity, highest first.
Only return valid JSON, no additional text."""


def scene_prompt(
    word: str,
    analysis: WordAnalysis,
    anchors: List[Anchor],
    native_language: str,
    custom_instructions: Optional[str] = None,
    current_scene: Optional[Scene] = None,
) -> str:
    native = language_name(native_language)
    anchors_info = "\n".join(f'"{a.chunk}" -> {native} word: "{a.anchor_word}"' for a in anchors)
    current = ""
    if current_scene:
        bindings = ", ".join(f"{b.anchor} {b.relation} {b.target}" for b in current_scene.bindings)
        current = f"Current scene:\nMain object: {current_scene.main_object}\nBindings: {bindings}\n"
    extra = f"\n7. Follow these custom requirements: {custom_instructions}" if custom_instructions else ""
    return f"""You are a mnemonic scene builder for a vocabulary app.

Build one visual scene connecting:
- Target word: "{word}" ({analysis.pos})
- Meaning: "{analysis.translation}" ({analysis.basic_meaning})
- Phonetic anchors:
{anchors_info}

{current}{_custom_block(custom_instructions)}
Scene rules:
1. The main object represents the MEANING of the word
2. Every anchor word is physically connected to the main object
3. Use spatial relations: on, inside, attached_to, holding, wearing, sitting_on, standing_on
4. All elements form one coherent image
5. Keep it simple: one scene, clear relationships
6. Only concrete objects, no abstract symbols{extra}

Return a JSON object with this structure:
{{
  "scene": {{
    "main_object": "visual representation of the meaning",
    "bindings": [{{"anchor": "{native} anchor word", "relation": "spatial relation", "target": "what it relates to"}}],
    "style": {{"visual": "clean, realistic 3D", "background": "simple", "no_text": true}}
  }},
  "imagePrompt": {{
    "prompt": "detailed English prompt for an image generation model describing the scene",
    "negative_prompt": "{DEFAULT_NEGATIVE_PROMPT}, multiple scenes, abstract symbols"
  }}
}}

Only return valid JSON, no additional text."""


def image_prompt_enhancement(prompt: str, custom_instructions: str) -> str:
    return f"""You refine prompts for an image generation model.

Current prompt:
{prompt}

Rewrite it so that the image also follows these instructions: {custom_instructions}
Keep every object and spatial relation of the current prompt unless the instructions change it.
Never ask for text or letters in the image.

Return a JSON object: {{"prompt": "the rewritten prompt in English"}}
Only return valid JSON, no additional text."""
