from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from karetek.api.deps import get_identity, get_services, require_user
from karetek.core.chat import InvalidChatRequest
from karetek.core.identity import Authenticated, Identity
from karetek.core.llm_client import LLMError
from karetek.core.services import Services
from karetek.models.schemas import ChatRequest, ChatResponse, TranslateRequest, TranslateResponse

router = APIRouter()

def _turns(messages):
    if messages is None:
        return None
    return [turn.model_dump(mode="json") for turn in messages]

@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    """Answer one chat turn; signed-in callers with a session id get the turn saved"""

    try:
        result = await services.chat.handle(
            _turns(request.messages),
            language=request.language,
            session_id=request.sessionId,
            identity=identity,
        )
        return ChatResponse(message=result.message, saved=result.saved)

    except InvalidChatRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LLMError as e:
        logger.error(f"Chat completion failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to process chat request")
    except Exception as e:
        logger.error(f"Chat error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process chat request")

@router.post("/chat/translate", response_model=TranslateResponse)
async def translate(request: TranslateRequest, services: Services = Depends(get_services)):
    try:
        translated = await services.translator.translate(_turns(request.messages), request.targetLanguage)
        return TranslateResponse(translatedText=translated)

    except InvalidChatRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Translation error: {e}")
        raise HTTPException(status_code=500, detail="Failed to translate messages")

@router.get("/consultations")
async def list_consultations(
    limit: int = Query(20, ge=1, le=100),
    identity: Authenticated = Depends(require_user),
    services: Services = Depends(get_services),
):
    """The caller's consultations, newest first"""

    try:
        consultations = await run_in_threadpool(services.repository.list_consultations, identity.user_id, limit=limit)
        return {"consultations": consultations}

    except Exception as e:
        logger.error(f"Failed to list consultations for {identity.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch consultations")
