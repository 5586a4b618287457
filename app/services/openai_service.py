import logging

import openai
from openai import OpenAI

from app.core.config import settings
from app.core.exceptions import LLMOverloadedError

logger = logging.getLogger(__name__)

OVERLOADED_STATUS_CODES = {503}


class OpenAIService:
    """Text-in/text-out access to the chat completion model."""

    def __init__(self):
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is not configured. Set it in deployment environment variables.")
        self.client = OpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout_seconds,
            max_retries=0,
        )

    def generate_content(self, prompt: str, timeout: float | None = None) -> str:
        client = self.client.with_options(timeout=timeout) if timeout is not None else self.client
        try:
            response = client.chat.completions.create(
                model=settings.openai_model,
                temperature=settings.openai_temperature,
                messages=[
                    {
                        "role": "system",
                        "content": "Follow the requested response format exactly. Use plain text, no markdown headings.",
                    },
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.APIStatusError as exc:
            if exc.status_code in OVERLOADED_STATUS_CODES:
                raise LLMOverloadedError(f"Model overloaded ({exc.status_code})") from exc
            raise

        return (response.choices[0].message.content or "").strip()
