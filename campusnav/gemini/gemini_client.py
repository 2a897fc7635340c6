"""Thin client over the Gemini API for vision, text and speech calls."""

import time
from dataclasses import dataclass
from typing import List, Optional, Tuple, Type

from google import genai
from google.genai import types
from pydantic import BaseModel

from campusnav.utils.logger import get_logger

logger = get_logger(__name__)


class GeminiClientError(Exception):
    """Exception raised for Gemini client errors."""
    pass


@dataclass
class GeminiResponse:
    """Response from Gemini API with timing info."""
    text: Optional[str]
    elapsed_ms: float
    success: bool


class GeminiClient:
    """
    Gemini client for the campus navigator.

    Every call is a single stateless request; answers that need structure
    are requested as JSON against a pydantic schema.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        max_retries: int = 2,
        system_instruction: Optional[str] = None
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key.
            model: Model name to use.
            max_retries: Attempts per call in generate_with_retry().
            system_instruction: System prompt sent with every text/vision call.
        """
        self.model = model
        self.max_retries = max_retries
        self.system_instruction = system_instruction

        try:
            self.client = genai.Client(api_key=api_key)
            logger.info(f"Gemini client initialized (model: {model})")
        except Exception as e:
            raise GeminiClientError(f"Failed to initialize Gemini client: {e}")

    def generate(
        self,
        prompt: str,
        image_bytes: Optional[bytes] = None,
        mime_type: str = "image/jpeg",
        response_schema: Optional[Type[BaseModel]] = None
    ) -> GeminiResponse:
        """
        Send a prompt, optionally with an image.

        Args:
            prompt: Text prompt.
            image_bytes: Encoded image to attach.
            mime_type: MIME type of the image.
            response_schema: Pydantic model the answer must follow (JSON mode).

        Returns:
            GeminiResponse with text, timing, and success status.
        """
        start_time = time.time()

        try:
            parts: List[types.Part] = [types.Part.from_text(text=prompt)]
            if image_bytes is not None:
                parts.append(types.Part.from_bytes(data=image_bytes, mime_type=mime_type))

            config_kwargs = {"system_instruction": self.system_instruction}
            if response_schema is not None:
                config_kwargs["response_mime_type"] = "application/json"
                config_kwargs["response_schema"] = response_schema
            config = types.GenerateContentConfig(**config_kwargs)

            image_note = f", image {len(image_bytes)} bytes" if image_bytes else ""
            logger.debug(f"Sending prompt to Gemini ({len(prompt)} chars{image_note})")

            response = self.client.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=parts)],
                config=config,
            )
            elapsed_ms = (time.time() - start_time) * 1000

            if response and response.text:
                return GeminiResponse(text=response.text, elapsed_ms=elapsed_ms, success=True)
            return GeminiResponse(text=None, elapsed_ms=elapsed_ms, success=False)

        except Exception as e:
            elapsed_ms = (time.time() - start_time) * 1000
            logger.error(f"Gemini request failed ({elapsed_ms:.0f}ms): {e}")
            return GeminiResponse(text=None, elapsed_ms=elapsed_ms, success=False)

    def generate_with_retry(
        self,
        prompt: str,
        image_bytes: Optional[bytes] = None,
        mime_type: str = "image/jpeg",
        response_schema: Optional[Type[BaseModel]] = None
    ) -> Tuple[Optional[str], float]:
        """
        generate() with automatic retry on failure.

        Returns:
            Tuple of (response text or None, total elapsed_ms).
        """
        total_elapsed = 0.0

        for attempt in range(self.max_retries):
            result = self.generate(prompt, image_bytes, mime_type, response_schema)
            total_elapsed += result.elapsed_ms

            if result.success and result.text:
                return result.text, total_elapsed

            logger.warning(f"Attempt {attempt + 1}/{self.max_retries} failed ({result.elapsed_ms:.0f}ms)")

        logger.error("All retry attempts exhausted")
        return None, total_elapsed

    def synthesize_speech(self, text: str, model: str, voice: str) -> Optional[bytes]:
        """
        Text-to-speech through a Gemini TTS model.

        Args:
            text: Text to speak.
            model: TTS-capable model name.
            voice: Prebuilt voice name.

        Returns:
            Raw PCM audio (24kHz, 16-bit mono), or None on failure.
        """
        try:
            response = self.client.models.generate_content(
                model=model,
                contents=text,
                config=types.GenerateContentConfig(
                    response_modalities=["AUDIO"],
                    speech_config=types.SpeechConfig(
                        voice_config=types.VoiceConfig(
                            prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice)
                        )
                    ),
                ),
            )
            return response.candidates[0].content.parts[0].inline_data.data
        except Exception as e:
            logger.error(f"Speech synthesis failed: {e}")
            return None
