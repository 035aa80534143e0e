import os

# Must be set before mnemocards is imported: settings and engine are built at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = ""

from types import SimpleNamespace
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from mnemocards.database import Base, engine
from mnemocards.main import app
from mnemocards.cards.schemas import (
    Anchor,
    ChunkCandidates,
    ImagePrompt,
    PhoneticChunk,
    Phonetics,
    Scene,
    WordAnalysis,
)
from mnemocards.generation.gemini import GenerationError, get_generator
from mnemocards.generation.schemas import AnalyzeResponse, SceneResponse


ANALYSIS = WordAnalysis(
    normalized_word="table",
    pos="noun",
    ipa="ˈteɪbəl",
    translation="стол",
    basic_meaning="a piece of furniture with a flat top and legs",
    semantic_class="object",
    example_usage="Put the cup on the table.",
)

PHONETICS = Phonetics(
    ipa="ˈteɪbəl",
    chunks=[PhoneticChunk(chunk="ta", ipa="teɪ"), PhoneticChunk(chunk="ble", ipa="bəl")],
)

# Deliberately not sorted by similarity
CANDIDATES = [
    ChunkCandidates.model_validate({
        "chunk": "ta",
        "candidates": [
            {"word": "тень", "phonetic_similarity": 0.6, "imageable": True, "frequency": "high"},
            {"word": "тэг", "phonetic_similarity": 0.8, "imageable": True, "frequency": "medium"},
        ],
    }),
    ChunkCandidates.model_validate({
        "chunk": "ble",
        "candidates": [
            {"word": "блин", "phonetic_similarity": 0.9, "imageable": True, "frequency": "high"},
            {"word": "бал", "phonetic_similarity": 0.7, "imageable": True, "frequency": "medium"},
        ],
    }),
]

SCENE = Scene.model_validate({
    "main_object": "a wooden table",
    "bindings": [
        {"anchor": "тэг", "relation": "attached_to", "target": "table leg"},
        {"anchor": "блин", "relation": "on", "target": "table top"},
    ],
})

IMAGE_PROMPT = ImagePrompt(
    prompt="A wooden table with a price tag on its leg and a pancake on top, clean 3D render",
    negative_prompt="text, letters, watermark, blur",
)


class FakeGenerator:
    """Stands in for MnemonicGenerator; records calls and can be told to fail."""

    def __init__(self):
        self.calls = []
        self.error: Optional[GenerationError] = None
        self.image_url = "https://images.test/table.png"

    def _record(self, name, **kwargs):
        self.calls.append((name, kwargs))
        if self.error is not None:
            raise self.error

    async def analyze_word(self, word, learning_language, native_language):
        self._record("analyze_word", word=word, learning_language=learning_language, native_language=native_language)
        return AnalyzeResponse(analysis=ANALYSIS, phonetics=PHONETICS)

    async def customize_chunking(self, word, learning_language, custom_instructions=None, current_chunks=None):
        self._record("customize_chunking", word=word, custom_instructions=custom_instructions, current_chunks=current_chunks)
        return Phonetics(ipa=PHONETICS.ipa, chunks=[PhoneticChunk(chunk="table", ipa="ˈteɪbəl")])

    async def generate_anchors(self, word, phonetics, native_language, custom_instructions=None, current_anchors=None):
        self._record("generate_anchors", word=word, custom_instructions=custom_instructions, current_anchors=current_anchors)
        chunks = {c.chunk for c in phonetics.chunks}
        return [group for group in CANDIDATES if group.chunk in chunks]

    async def build_scene(self, word, analysis, anchors: List[Anchor], native_language, custom_instructions=None, current_scene=None):
        self._record("build_scene", word=word, anchors=anchors, custom_instructions=custom_instructions, current_scene=current_scene)
        return SceneResponse(scene=SCENE, image_prompt=IMAGE_PROMPT)

    async def enhance_image_prompt(self, prompt, custom_instructions):
        self._record("enhance_image_prompt", prompt=prompt, custom_instructions=custom_instructions)
        return f"{prompt}, {custom_instructions}"

    async def generate_image(self, prompt, negative_prompt=None):
        self._record("generate_image", prompt=prompt, negative_prompt=negative_prompt)
        return self.image_url


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def sample():
    return SimpleNamespace(
        analysis=ANALYSIS,
        phonetics=PHONETICS,
        candidates=CANDIDATES,
        scene=SCENE,
        image_prompt=IMAGE_PROMPT,
    )


@pytest.fixture
def generator():
    fake = FakeGenerator()
    app.dependency_overrides[get_generator] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_generator, None)


@pytest.fixture
def client(generator):
    return TestClient(app)


@pytest.fixture
def user(client):
    response = client.post("/users", json={
        "email": "learner@example.com",
        "learning_language": "en",
        "native_language": "ru",
    })
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def auth_headers(user):
    return {"X-User-Id": str(user["id"])}


@pytest.fixture
def card_payload(sample):
    return {
        "word": "table",
        "analysis": sample.analysis.model_dump(),
        "phonetics": sample.phonetics.model_dump(),
        "anchors": [
            {"chunk": "ta", "anchor_word": "тэг", "score": 0.8, "reason": "Auto-selected best match"},
            {"chunk": "ble", "anchor_word": "блин", "score": 0.9, "reason": "User selected"},
        ],
        "scene": sample.scene.model_dump(),
        "imagePrompt": sample.image_prompt.model_dump(),
        "imageUrl": "https://images.test/table.png",
        "learningLanguage": "en",
        "nativeLanguage": "ru",
    }
