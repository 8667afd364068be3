from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger

from karetek.api.deps import get_services
from karetek.core.services import Services
from karetek.models.schemas import SpeakRequest, SpeakResponse
from karetek.utils.language import detect_language, has_arabic_script

router = APIRouter()

ROMAN_SCRIPT_MESSAGE = (
    "Voice is only available for {language} written in its native script. "
    "Showing the text response instead."
)
SCRIPT_LANGUAGES = {"ur": "Urdu", "ar": "Arabic"}

@router.post("/avatar/speak", response_model=SpeakResponse, response_model_exclude_none=True)
async def speak(request: SpeakRequest, services: Services = Depends(get_services)):
    """Synthesize speech for assistant text and return a hosted audio URL"""

    if not request.text or not request.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")

    language = request.language or detect_language(request.text)

    # Romanized Urdu or Arabic cannot be voiced by the TTS model
    if language in SCRIPT_LANGUAGES and not has_arabic_script(request.text):
        logger.info(f"Skipping speech for Roman-script {language} text")
        return SpeakResponse(
            success=False,
            textOnly=True,
            language=language,
            message=ROMAN_SCRIPT_MESSAGE.format(language=SCRIPT_LANGUAGES[language]),
        )

    try:
        audio_url = await services.speech.speak(request.text, language)
        return SpeakResponse(success=True, audioUrl=audio_url, language=language)

    except Exception as e:
        logger.error(f"Avatar speech failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to generate speech"}
        )
