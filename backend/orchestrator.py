"""
Orchestrator module for Syllabus Engine
One async round trip per intent: structure, lesson, graph, exam, speech, chat
"""

import asyncio
import base64
import hashlib
import logging
from contextlib import nullcontext
from typing import Awaitable, Callable, List, Optional

import openai
from openai import AsyncOpenAI

from backend.course_prompts import (
    STRUCTURE_PROMPT, GRAPH_PROMPT,
    build_lesson_prompt, build_exam_prompt, build_chat_system_prompt,
)
from backend.errors import FatalIngestFailure, MalformedResponse, ServiceUnavailable
from backend.models import (
    ChatMessage, ContentDepth, CourseModule, CourseStructure,
    ExamQuestion, ImageAttachment, KnowledgeGraph, LessonContent,
)
from backend.normalizer import (
    safe_parse_json, lint, normalize_structure, normalize_graph, normalize_exam,
)
from backend.response_schemas import (
    STRUCTURE_SCHEMA, GRAPH_SCHEMA, EXAM_SCHEMA, response_format_for,
)
from utils.config import (
    MAX_RETRIES, RETRY_DELAY, SPEECH_CHAR_LIMIT, CHAT_CONTEXT_CHAR_LIMIT,
    CHAT_HISTORY_LIMIT, EXAM_QUESTION_COUNT, get_current_provider,
)
from utils.providers import (
    create_client, get_model_for_task, get_provider_info, get_api_call_params, ProviderError,
)

logger = logging.getLogger(__name__)

LESSON_FALLBACK_TEXT = "Failed to generate content."
CHAT_FALLBACK_TEXT = "I couldn't understand that."


def encode_document(data: bytes) -> str:
    """Base64 transport encoding for an uploaded PDF"""
    return base64.b64encode(data).decode("ascii")


def encode_image(data: bytes, media_type: str = "image/jpeg") -> ImageAttachment:
    return ImageAttachment(data=base64.b64encode(data).decode("ascii"), media_type=media_type)


def document_digest(document_b64: str) -> str:
    """Stable key for cache lookups on the same document"""
    return hashlib.sha256(document_b64.encode("ascii")).hexdigest()[:16]


def get_token_count(response) -> str:
    """Extract token count from API response, or 'n/a' if not available"""
    usage_info = getattr(response, 'usage', None)
    if usage_info:
        if hasattr(usage_info, 'total_tokens'):
            return str(usage_info.total_tokens)
        elif isinstance(usage_info, dict):
            return str(usage_info.get('total_tokens', 'n/a'))
    return 'n/a'


async def retry_api_call(func: Callable[[], Awaitable], max_retries: int = MAX_RETRIES):
    """Retry API calls with exponential backoff"""
    last_error = None
    for attempt in range(max_retries):
        try:
            return await func()
        except (openai.AuthenticationError, openai.PermissionDeniedError):
            raise
        except openai.RateLimitError as e:
            wait_time = RETRY_DELAY * (2 ** attempt)
            logger.warning(f"Rate limit hit, waiting {wait_time} seconds...")
            await asyncio.sleep(wait_time)
            last_error = e
        except openai.APIError as e:
            if attempt < max_retries - 1:
                wait_time = RETRY_DELAY * (2 ** attempt)
                logger.warning(f"API error, retrying in {wait_time} seconds...")
                await asyncio.sleep(wait_time)
                last_error = e
            else:
                raise
    logger.error(f"Failed after {max_retries} attempts. Last error: {str(last_error)}")
    raise RuntimeError(f"Failed after {max_retries} attempts. Last error: {str(last_error)}")


def _pdf_part(document_b64: str) -> dict:
    return {
        "type": "file",
        "file": {
            "filename": "syllabus.pdf",
            "file_data": f"data:application/pdf;base64,{document_b64}",
        },
    }


def _document_messages(document_b64: str, instruction: str) -> list:
    return [{
        "role": "user",
        "content": [_pdf_part(document_b64), {"type": "text", "text": instruction.strip()}],
    }]


def _message_text(response) -> str:
    """Text of the first choice, or '' when the response has none"""
    choices = getattr(response, "choices", None)
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    if message is None:
        return ""
    return message.content or ""


def _client_scope(client: Optional[AsyncOpenAI]):
    """Injected clients are left open; a client created here closes its HTTP pool on exit"""
    if client is not None:
        return nullcontext(client)
    return create_client()


async def _complete(intent: str, task: str, messages: list,
                    client: Optional[AsyncOpenAI] = None, **params) -> str:
    """
    Run one chat completion for an intent and return the reply text.

    Raises:
        ServiceUnavailable: If the provider is misconfigured or the call fails
    """
    try:
        model = get_model_for_task(task)
        scope = _client_scope(client)
    except ProviderError as e:
        logger.error(f"Provider configuration error: {str(e)}")
        raise ServiceUnavailable(intent, f"Provider configuration error: {str(e)}")

    provider = get_current_provider()

    async with scope as client:
        async def make_call():
            call_params = get_api_call_params(model=model, messages=messages, **params)
            logger.info(f"[API CALL] Reason: {intent} | Model: {model} | Provider: {get_provider_info(provider).get('name', provider)}")
            return await client.chat.completions.create(**call_params)

        try:
            response = await retry_api_call(make_call)
        except openai.AuthenticationError:
            logger.error(f"Authentication failed during {intent}")
            raise ServiceUnavailable(intent, "Invalid API key. Please check your API key configuration.")
        except openai.PermissionDeniedError:
            logger.error(f"Permission denied during {intent}")
            raise ServiceUnavailable(intent, "API key doesn't have access to the required model.")
        except (openai.OpenAIError, RuntimeError) as e:
            logger.error(f"{intent} API call failed: {type(e).__name__}: {str(e)}")
            raise ServiceUnavailable(intent, str(e))

    logger.info(f"[API RETURN] {intent} complete | Model: {model} | Tokens: {get_token_count(response)}")
    return _message_text(response)


def _parse(intent: str, text: str, schema: dict):
    """Parse JSON output and log schema drift; raises MalformedResponse"""
    try:
        data = safe_parse_json(text)
    except MalformedResponse as e:
        logger.error(f"{intent}: malformed response: {e} | Raw: {e.preview()}")
        raise

    errors = lint(data, schema)
    if errors:
        logger.warning(f"{intent}: response does not match schema: {errors[:5]}")
    return data


async def extract_structure(document_b64: str, client: Optional[AsyncOpenAI] = None) -> CourseStructure:
    """
    Extract the course outline from a syllabus.

    Raises:
        FatalIngestFailure: On any failure; the session cannot continue without a structure
    """
    intent = "Structure extraction"
    try:
        text = await _complete(
            intent, "structure", _document_messages(document_b64, STRUCTURE_PROMPT), client,
            response_format=response_format_for("course_structure", STRUCTURE_SCHEMA),
        )
        structure = normalize_structure(_parse(intent, text, STRUCTURE_SCHEMA))
    except (MalformedResponse, ServiceUnavailable) as e:
        raise FatalIngestFailure(
            "Failed to parse syllabus structure. The response might be incomplete or invalid."
        ) from e

    logger.info(f"Extracted '{structure.title}' with {len(structure.modules)} modules")
    return structure


async def generate_lesson(document_b64: str, module: CourseModule, depth: ContentDepth,
                          client: Optional[AsyncOpenAI] = None) -> LessonContent:
    """
    Generate lesson markdown for a module at a depth.

    Raises:
        ServiceUnavailable: If the call fails
    """
    task = "lesson_deep" if depth == ContentDepth.DEEP_DIVE else "lesson"
    prompt = build_lesson_prompt(module.title, module.topics, depth)
    text = await _complete(f"Lesson generation ({depth.value})", task,
                           _document_messages(document_b64, prompt), client)
    return LessonContent(module_id=module.id, depth=depth, text=text.strip() or LESSON_FALLBACK_TEXT)


async def generate_graph(document_b64: str, client: Optional[AsyncOpenAI] = None) -> KnowledgeGraph:
    """Best-effort knowledge graph; any failure yields an empty graph."""
    intent = "Knowledge graph generation"
    try:
        text = await _complete(
            intent, "graph", _document_messages(document_b64, GRAPH_PROMPT), client,
            response_format=response_format_for("knowledge_graph", GRAPH_SCHEMA),
        )
        graph = normalize_graph(_parse(intent, text, GRAPH_SCHEMA))
    except (MalformedResponse, ServiceUnavailable) as e:
        logger.warning(f"Knowledge graph generation failed: {e}")
        return KnowledgeGraph()

    logger.info(f"Knowledge graph has {len(graph.nodes)} nodes and {len(graph.links)} links")
    return graph


async def generate_exam(document_b64: str, module: CourseModule,
                        num_questions: int = EXAM_QUESTION_COUNT,
                        client: Optional[AsyncOpenAI] = None) -> List[ExamQuestion]:
    """Best-effort practice exam; any failure yields no questions."""
    intent = "Exam generation"
    try:
        text = await _complete(
            intent, "exam",
            _document_messages(document_b64, build_exam_prompt(module.title, num_questions)), client,
            response_format=response_format_for("exam", EXAM_SCHEMA),
        )
        questions = normalize_exam(_parse(intent, text, EXAM_SCHEMA))
    except (MalformedResponse, ServiceUnavailable) as e:
        logger.error(f"Exam generation failed: {e}")
        return []

    return questions[:num_questions]


async def synthesize_speech(text: str, client: Optional[AsyncOpenAI] = None) -> Optional[str]:
    """
    Narrate the start of a lesson.

    Returns:
        Base64 PCM16 mono audio at 24 kHz, or None if unavailable
    """
    text = (text or "")[:SPEECH_CHAR_LIMIT]
    if not text.strip():
        return None

    try:
        model = get_model_for_task("speech")
        voice = get_model_for_task("speech_voice")
        scope = _client_scope(client)
    except ProviderError as e:
        logger.warning(f"Speech synthesis unavailable: {e}")
        return None

    async with scope as client:
        async def make_call():
            logger.info(f"[API CALL] Reason: Speech synthesis | Model: {model} | Chars: {len(text)}")
            return await client.audio.speech.create(
                model=model, voice=voice, input=text, response_format="pcm",
            )

        try:
            response = await retry_api_call(make_call)
        except (openai.OpenAIError, RuntimeError) as e:
            logger.error(f"Speech synthesis failed: {type(e).__name__}: {str(e)}")
            return None

    audio = response.content
    logger.info(f"[API RETURN] Speech synthesis complete | Bytes: {len(audio)}")
    return base64.b64encode(audio).decode("ascii") if audio else None


def build_chat_messages(history: List[ChatMessage], message: str, context: str,
                        image: Optional[ImageAttachment] = None,
                        history_limit: Optional[int] = CHAT_HISTORY_LIMIT) -> list:
    """System instruction, prior turns and the new user turn."""
    if history_limit is not None:
        history = history[-history_limit:] if history_limit > 0 else []

    messages = [{"role": "system", "content": build_chat_system_prompt(context, CHAT_CONTEXT_CHAR_LIMIT)}]
    messages.extend({"role": m.role, "content": m.content} for m in history)

    if image is None:
        messages.append({"role": "user", "content": message})
    else:
        messages.append({
            "role": "user",
            "content": [
                {"type": "text", "text": message},
                {"type": "image_url", "image_url": {"url": image.data_url()}},
            ],
        })
    return messages


async def converse(history: List[ChatMessage], message: str, context: str,
                   image: Optional[ImageAttachment] = None,
                   client: Optional[AsyncOpenAI] = None) -> str:
    """
    One tutor turn grounded in the current lesson.

    Raises:
        ServiceUnavailable: If the call fails
    """
    messages = build_chat_messages(history, message, context, image)
    reply = await _complete("Conversational turn", "chat", messages, client)
    return reply.strip() or CHAT_FALLBACK_TEXT
