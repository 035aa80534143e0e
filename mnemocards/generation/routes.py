from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from mnemocards.generation.audio import fetch_pronunciation
from mnemocards.generation.gemini import (
    GenerationError,
    GenerationUnavailableError,
    MnemonicGenerator,
    get_generator,
)
from mnemocards.generation.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    AnchorsRequest,
    AnchorsResponse,
    AudioResponse,
    ChunkingCustomizeRequest,
    ChunkingResponse,
    ImageRequest,
    ImageResponse,
    SceneRequest,
    SceneResponse,
)

router = APIRouter(tags=["Generation"])


def require_fields(*values: Any) -> None:
    """Reject requests whose required fields are missing, blank or empty."""
    if any(not (value.strip() if isinstance(value, str) else value) for value in values):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields"
        )


def generation_failed(error: GenerationError, message: str) -> HTTPException:
    if isinstance(error, GenerationUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(error)
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=message
    )


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_word(
    request: AnalyzeRequest,
    generator: MnemonicGenerator = Depends(get_generator)
):
    """Analyze a word and split it into phonetic chunks."""
    require_fields(request.word, request.learning_language, request.native_language)
    try:
        return await generator.analyze_word(
            request.word.strip(), request.learning_language, request.native_language
        )
    except GenerationError as e:
        raise generation_failed(e, "Failed to analyze word")


@router.post("/chunking/customize", response_model=ChunkingResponse)
async def customize_chunking(
    request: ChunkingCustomizeRequest,
    generator: MnemonicGenerator = Depends(get_generator)
):
    """Re-split a word into chunks following the user's instructions."""
    require_fields(request.word, request.learning_language, request.native_language, request.custom_instructions)
    try:
        phonetics = await generator.customize_chunking(
            request.word,
            request.learning_language,
            custom_instructions=request.custom_instructions,
            current_chunks=request.current_chunks,
        )
    except GenerationError as e:
        raise generation_failed(e, "Failed to customize chunking")
    return {"phonetics": phonetics}


@router.post("/anchors", response_model=AnchorsResponse)
async def generate_anchors(
    request: AnchorsRequest,
    generator: MnemonicGenerator = Depends(get_generator)
):
    """Propose native-language anchor words for every chunk."""
    require_fields(request.word, request.native_language)
    try:
        candidates = await generator.generate_anchors(
            request.word, request.phonetics, request.native_language
        )
    except GenerationError as e:
        raise generation_failed(e, "Failed to generate anchors")
    return {"candidates": candidates}


@router.post("/anchors/customize", response_model=AnchorsResponse)
async def customize_anchors(
    request: AnchorsRequest,
    generator: MnemonicGenerator = Depends(get_generator)
):
    """Regenerate anchor candidates following the user's instructions."""
    require_fields(request.word, request.native_language, request.custom_instructions)
    try:
        candidates = await generator.generate_anchors(
            request.word,
            request.phonetics,
            request.native_language,
            custom_instructions=request.custom_instructions,
            current_anchors=request.current_anchors,
        )
    except GenerationError as e:
        raise generation_failed(e, "Failed to customize anchors")
    return {"candidates": candidates}


@router.post("/scene", response_model=SceneResponse)
async def build_scene(
    request: SceneRequest,
    generator: MnemonicGenerator = Depends(get_generator)
):
    """Bind the selected anchors to the word's meaning in one scene."""
    require_fields(request.word, request.native_language, request.anchors)
    try:
        return await generator.build_scene(
            request.word, request.analysis, request.anchors, request.native_language
        )
    except GenerationError as e:
        raise generation_failed(e, "Failed to build scene")


@router.post("/scene/customize", response_model=SceneResponse)
async def customize_scene(
    request: SceneRequest,
    generator: MnemonicGenerator = Depends(get_generator)
):
    """Rebuild the scene following the user's instructions."""
    require_fields(request.word, request.native_language, request.anchors, request.custom_instructions)
    try:
        return await generator.build_scene(
            request.word,
            request.analysis,
            request.anchors,
            request.native_language,
            custom_instructions=request.custom_instructions,
            current_scene=request.current_scene,
        )
    except GenerationError as e:
        raise generation_failed(e, "Failed to customize scene")


@router.post("/image", response_model=ImageResponse, response_model_exclude_none=True)
async def generate_image(
    request: ImageRequest,
    generator: MnemonicGenerator = Depends(get_generator)
):
    """
    Generate the scene image.

    With **customInstructions** the prompt is rewritten instead and returned
    as `enhancedPrompt`; the client generates again from it.
    """
    if not request.prompt.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing prompt"
        )

    try:
        if request.custom_instructions and request.custom_instructions.strip():
            enhanced = await generator.enhance_image_prompt(request.prompt, request.custom_instructions)
            return {"enhancedPrompt": enhanced}
        image_url = await generator.generate_image(request.prompt, request.negative_prompt)
    except GenerationError as e:
        raise generation_failed(e, "Failed to generate image")
    return {"imageUrl": image_url}


@router.get("/audio", response_model=AudioResponse)
async def get_audio(
    word: str = Query(..., min_length=1, description="Word to pronounce"),
    language: str = Query("en", description="Language code of the word")
):
    """Find a pronunciation audio URL for a word."""
    audio_url, source = await fetch_pronunciation(word, language)
    return {"audioUrl": audio_url, "source": source}
