"""
Gemini REST client.

Three call shapes, all plain JSON over urllib:
  - chat_completion(): multi-turn chat with a system instruction
  - generate_json(): single prompt, JSON-mode response parsed to a dict
  - generate_image(): image + prompt in, first inlineData image out

Every failure surfaces as GeminiError; routers turn that into a 502.
"""

import json
import logging
import urllib.error
import urllib.request
from typing import Optional

from .config import settings

logger = logging.getLogger("renoquote.gemini")

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

QUOTE_ASSISTANT_SYSTEM_PROMPT = """You are the online quote assistant for {business_name}, a renovation contractor in {business_address}.

Your job is to collect what the team needs to prepare a ballpark estimate:
1. Project type (kitchen, bathroom, basement, flooring, painting, exterior, other)
2. Approximate size in square feet
3. Finish level (economy, standard, premium)
4. Timeline and budget range
5. Name, email and phone number

Rules:
- Ask one or two questions at a time. Keep replies short and friendly.
- Never promise a final price. Estimates are ranges and include 13% HST.
- A site visit is always required before a final quote.
- If the customer uploads photos, describe what you see that affects cost.
- When you have everything, summarize the project back and tell the customer to submit the request.
"""

VOICE_SUMMARY_PROMPT = """Summarize this conversation between a homeowner and a renovation design assistant.

Return JSON with this exact shape:
{
  "summary": "2-3 sentence summary of what the homeowner wants",
  "extractedPreferences": {
    "desiredChanges": ["..."],
    "materialPreferences": ["..."],
    "styleIndicators": ["..."],
    "preservationNotes": ["things the homeowner wants kept as-is"]
  }
}

Use short phrases. Leave a list empty when nothing was said about it.

## CONVERSATION
"""


class GeminiError(Exception):
    """Gemini was unreachable, rejected the call, or returned something unusable."""


def is_configured() -> bool:
    return bool(settings.GEMINI_API_KEY)


def _post(model: str, payload: dict, timeout: float) -> dict:
    if not settings.GEMINI_API_KEY:
        raise GeminiError("GEMINI_API_KEY not configured")

    url = f"{GEMINI_BASE_URL}/{model}:generateContent?key={settings.GEMINI_API_KEY}"
    req = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )

    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return json.loads(response.read())
    except urllib.error.HTTPError as e:
        error_body = e.read().decode(errors="replace")
        logger.error("Gemini %s returned HTTP %s: %s", model, e.code, error_body[:500])
        raise GeminiError(f"Gemini API error: {error_body}") from e
    except (urllib.error.URLError, TimeoutError, ValueError) as e:
        logger.error("Gemini %s call failed: %s", model, e)
        raise GeminiError(f"Gemini call failed: {e}") from e


def _candidate_parts(result: dict) -> list:
    try:
        return result["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        raise GeminiError("No candidates in Gemini response")


def _first_text(parts: list) -> str:
    for part in parts:
        if part.get("text"):
            return part["text"]
    raise GeminiError("No text in Gemini response")


def chat_completion(messages: list[dict], system_prompt: Optional[str] = None) -> str:
    """
    Send a conversation to Gemini and return the assistant's reply text.

    messages: [{"role": "user" | "assistant" | "system", "content": str}].
    System entries are dropped; the system prompt travels as systemInstruction.
    """
    contents = []
    for msg in messages:
        role = msg.get("role")
        if role not in ("user", "assistant"):
            continue
        contents.append({
            "role": "model" if role == "assistant" else "user",
            "parts": [{"text": msg.get("content", "")}],
        })
    if not contents:
        raise GeminiError("Conversation has no user or assistant messages")

    if system_prompt is None:
        system_prompt = QUOTE_ASSISTANT_SYSTEM_PROMPT.format(
            business_name=settings.BUSINESS_NAME,
            business_address=settings.BUSINESS_ADDRESS,
        )

    payload = {
        "systemInstruction": {"parts": [{"text": system_prompt}]},
        "contents": contents,
        "generationConfig": {"temperature": 0.7, "maxOutputTokens": 1024},
    }
    result = _post(settings.GEMINI_CHAT_MODEL, payload, timeout=30)
    return _first_text(_candidate_parts(result))


def generate_json(prompt: str, temperature: float = 0.3) -> dict:
    """Single-shot JSON mode call. Returns the parsed object."""
    payload = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": temperature,
            "responseMimeType": "application/json",
        },
    }
    result = _post(settings.GEMINI_CHAT_MODEL, payload, timeout=30)
    text = _first_text(_candidate_parts(result))
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise GeminiError(f"Gemini returned invalid JSON: {e}") from e


def summarize_voice_transcript(transcript: list[dict]) -> dict:
    lines = [f"{entry['role'].upper()}: {entry['content']}" for entry in transcript]
    return generate_json(VOICE_SUMMARY_PROMPT + "\n".join(lines))


def generate_image(
    prompt: str,
    image_base64: Optional[str] = None,
    mime_type: Optional[str] = None,
    timeout: float = 60,
) -> Optional[dict]:
    """
    Image-to-image generation with responseModalities Text+Image.

    Returns {"base64": str, "mime_type": str}, or None when the model answered
    with text only. Raises GeminiError when the call itself fails.
    """
    parts = []
    if image_base64 and mime_type:
        if "base64," in image_base64:
            image_base64 = image_base64.split("base64,", 1)[1]
        parts.append({"inlineData": {"mimeType": mime_type, "data": image_base64}})
    parts.append({"text": prompt})

    payload = {
        "contents": [{"parts": parts}],
        "generationConfig": {"responseModalities": ["Text", "Image"]},
    }
    result = _post(settings.GEMINI_IMAGE_MODEL, payload, timeout=timeout)

    for part in _candidate_parts(result):
        inline = part.get("inlineData")
        if inline and inline.get("data"):
            return {
                "base64": inline["data"],
                "mime_type": inline.get("mimeType") or "image/png",
            }

    logger.warning("No image found in Gemini response")
    return None
