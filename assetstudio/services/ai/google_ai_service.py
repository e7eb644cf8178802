"""Google AI client for text generation with Gemini models."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from google import genai
from google.genai import types

from assetstudio.errors import AIProviderError
from assetstudio.models.domain import AICredentials

logger = logging.getLogger(__name__)


@dataclass
class AIResponse:
    """Standardized text response."""
    text: str
    model: str
    finish_reason: Optional[str] = None


class GoogleAIService:
    """
    Thin async wrapper around the google-genai SDK.

    Clients are cached per API key. Any SDK failure or empty response is
    raised as AIProviderError so callers can decide whether to fall back.
    """

    provider_name = "google"

    def __init__(self, client_factory: Optional[Callable[[str], genai.Client]] = None):
        self._client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))
        self._clients: Dict[str, genai.Client] = {}

    def _client(self, api_key: str) -> genai.Client:
        if api_key not in self._clients:
            self._clients[api_key] = self._client_factory(api_key)
        return self._clients[api_key]

    async def generate_text(
        self,
        prompt: str,
        credentials: AICredentials,
        temperature: float = 0.7,
        max_output_tokens: int = 1000,
        top_p: float = 0.8,
        top_k: int = 40,
    ) -> AIResponse:
        """Generate text from a single prompt."""
        logger.info(
            "[Google AI] Generating text with model %s: %s...",
            credentials.model,
            prompt[:100],
        )

        try:
            response = await self._client(credentials.api_key).aio.models.generate_content(
                model=credentials.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=temperature,
                    max_output_tokens=max_output_tokens,
                    top_p=top_p,
                    top_k=top_k,
                ),
            )
        except Exception as e:
            logger.error("[Google AI] Text generation failed: %s", e)
            raise AIProviderError(f"Google AI text generation failed: {e}") from e

        text = getattr(response, "text", None)
        if not text or not text.strip():
            raise AIProviderError("Google AI returned an empty response")

        finish_reason = None
        candidates = getattr(response, "candidates", None)
        if candidates:
            reason = getattr(candidates[0], "finish_reason", None)
            finish_reason = str(reason) if reason is not None else None

        return AIResponse(text=text.strip(), model=credentials.model, finish_reason=finish_reason)

    async def enhance_prompt(
        self,
        base_prompt: str,
        credentials: AICredentials,
        asset_type: Optional[str] = None,
        art_style: Optional[str] = None,
        style_keywords: Optional[List[str]] = None,
    ) -> AIResponse:
        """Rewrite a prompt to be more effective for generation."""
        request = build_enhancement_request(base_prompt, asset_type, art_style, style_keywords)
        return await self.generate_text(
            request,
            credentials,
            temperature=0.8,
            max_output_tokens=800,
        )


def build_enhancement_request(
    base_prompt: str,
    asset_type: Optional[str] = None,
    art_style: Optional[str] = None,
    style_keywords: Optional[List[str]] = None,
) -> str:
    lines = [
        "You are an expert prompt engineer specializing in AI content generation. "
        "Your task is to enhance and improve the following prompt to make it more "
        "effective for AI generation.",
        "",
        f'Original prompt: "{base_prompt}"',
    ]
    if asset_type:
        lines.append(f"Asset type: {asset_type}")
    if art_style:
        lines.append(f"Art style: {art_style}")
    if style_keywords:
        lines.append(f"Style keywords: {', '.join(style_keywords)}")

    lines += [
        "",
        "Please enhance this prompt by:",
        "1. Adding specific details that improve clarity and visual quality",
        "2. Incorporating technical terms that AI models respond well to",
        "3. Ensuring consistency with the specified art style",
        "4. Adding composition, lighting, and quality descriptors",
        "5. Maintaining the original creative intent",
        "",
        "Return only the enhanced prompt without explanations or additional text.",
    ]
    return "\n".join(lines)
