import logging
import asyncio
from typing import Optional

import google.generativeai as genai
from groq import AsyncGroq

from studyshift.core.config import settings

logger = logging.getLogger(__name__)

# ── Clients Initialization ────────────────────────────────────────────────────
logger.info(f"[INIT] AI_PROVIDER set to: {settings.AI_PROVIDER}")

groq_client: Optional[AsyncGroq] = None
if settings.GROQ_API_KEY:
    groq_client = AsyncGroq(api_key=settings.GROQ_API_KEY)
    logger.info("[INIT] ✓ Groq client initialized")
else:
    logger.warning("[INIT] ✗ Groq API key missing")

if settings.GOOGLE_API_KEY:
    genai.configure(api_key=settings.GOOGLE_API_KEY, transport="rest")
    logger.info("[INIT] ✓ Gemini client initialized")
else:
    logger.warning("[INIT] ✗ Google API key missing")


SYSTEM_PROMPT = (
    "You are a study assistant that turns study material into learning aids.\n"
    "Follow the requested JSON format exactly and output only the JSON."
)


# ── Core: Call Groq ───────────────────────────────────────────────────────────

async def _call_groq(prompt: str, max_new_tokens: int) -> str:
    """Call Groq chat completions; only the completion text comes back."""
    if not groq_client:
        raise ValueError("Groq API Key missing")

    logger.info(f"Calling Groq ({settings.GROQ_MODEL})...")
    completion = await groq_client.chat.completions.create(
        model=settings.GROQ_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        temperature=settings.TEMPERATURE,
        max_tokens=max_new_tokens,
    )
    result = completion.choices[0].message.content
    logger.info("✓ Groq call succeeded")
    return result or ""


# ── Core: Call Gemini ─────────────────────────────────────────────────────────

async def _call_gemini(prompt: str, max_new_tokens: int) -> str:
    """Call Gemini; the SDK is blocking so it runs in a worker thread."""
    if not settings.GOOGLE_API_KEY:
        raise ValueError("Google API Key missing")

    logger.info(f"Calling Gemini ({settings.GEMINI_MODEL})...")
    model = genai.GenerativeModel(
        model_name=settings.GEMINI_MODEL,
        generation_config={
            "temperature": settings.TEMPERATURE,
            "max_output_tokens": max_new_tokens,
        },
    )
    full_prompt = f"{SYSTEM_PROMPT}\n\nUser Task:\n{prompt}"
    response = await asyncio.to_thread(model.generate_content, full_prompt)
    logger.info("✓ Gemini call succeeded")
    return response.text


_PROVIDERS = {
    "groq": _call_groq,
    "gemini": _call_gemini,
}


# ── Single Entry Point ────────────────────────────────────────────────────────

async def call_model(prompt: str, max_new_tokens: Optional[int] = None) -> str:
    """
    One blocking request/response round trip against the configured provider.
    No retries and no failover: any error propagates to the caller.
    """
    caller = _PROVIDERS[settings.AI_PROVIDER]
    max_new_tokens = max_new_tokens or settings.MAX_NEW_TOKENS

    if settings.AI_TIMEOUT_SECONDS:
        return await asyncio.wait_for(
            caller(prompt, max_new_tokens),
            timeout=settings.AI_TIMEOUT_SECONDS,
        )
    return await caller(prompt, max_new_tokens)
