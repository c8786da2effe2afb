import os

from openai import AsyncOpenAI

from ai.prompts import build_lesson_plan_messages
from core.config import Settings
from core.models import GenerationRequest


class MissingApiKeyError(RuntimeError):
    pass


class OpenAIGenerationService:
    """Generation backend on the OpenAI chat completions API.

    No retry or timeout is layered on top of the client defaults; one call per request.
    """

    def __init__(self, settings: Settings):
        self.model = settings.openai_model
        self.max_tokens = settings.openai_max_tokens
        self.max_tokens_detailed = settings.openai_max_tokens_detailed

    def _api_key(self, request: GenerationRequest) -> str:
        api_key = request.options.api_key.strip() or os.getenv("OPENAI_API_KEY", "")
        if not api_key:
            raise MissingApiKeyError("Vui lòng cấu hình API Key trước khi sử dụng.")
        return api_key

    async def generate(self, request: GenerationRequest) -> str:
        max_tokens = self.max_tokens_detailed if request.options.detailed_report else self.max_tokens

        async with AsyncOpenAI(api_key=self._api_key(request)) as client:
            response = await client.chat.completions.create(
                model=self.model,
                messages=build_lesson_plan_messages(request),
                max_tokens=max_tokens,
                temperature=0.4,
            )

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
