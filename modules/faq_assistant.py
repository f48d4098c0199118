# modules/faq_assistant.py
# Single-turn FAQ answers about school life from a hosted model.

import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

SCHOOL_NAME = "Awadh Narayan Pratap Lal Intermediate College"

FALLBACK_ANSWER = "Sorry, I am having trouble connecting to my knowledge base. Please try again later."

SYSTEM_INSTRUCTION = (
    "You answer questions for a school portal. "
    'Reply with a JSON object of the form {"answer": "<your answer>"} and nothing else.'
)

FAQ_PROMPT_TEMPLATE = (
    "You are a helpful AI assistant that answers frequently asked questions about "
    f"college life at {SCHOOL_NAME}.\n"
    "Use the provided context to answer the question.\n"
    "If you don't know the answer, say you do not know.\n"
    "\n"
    "Question: {query}"
)


class FAQQuery(BaseModel):
    query: str = Field(description="The user query about college life.")

    @field_validator("query")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value


class FAQAnswer(BaseModel):
    answer: str = Field(description="The answer to the user query.")


@dataclass(frozen=True)
class AssistantResult:
    answer: str
    ok: bool
    error: Optional[str] = None


def build_prompt(query: str) -> str:
    return FAQ_PROMPT_TEMPLATE.format(query=query)


class FaqAssistant:
    """
    Forwards one question to the model and returns its answer.

    `client` is an ``openai.OpenAI`` (or anything with the same
    ``chat.completions.create``); ``None`` means the assistant is not
    configured and every call returns FALLBACK_ANSWER.
    """

    def __init__(self, client, model: str, timeout: float = 20.0):
        self.client = client
        self.model = model
        self.timeout = timeout

    def _fallback(self, error: str) -> AssistantResult:
        return AssistantResult(answer=FALLBACK_ANSWER, ok=False, error=error)

    def ask_result(self, query) -> AssistantResult:
        try:
            request = FAQQuery(query=query)
        except ValidationError as e:
            logger.warning("Rejected FAQ query: %s", e.errors()[0].get("msg"))
            return self._fallback("invalid query")

        if self.client is None:
            logger.error("Error in AI FAQ Assistant: no OpenAI client configured")
            return self._fallback("not configured")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_INSTRUCTION},
                    {"role": "user", "content": build_prompt(request.query)},
                ],
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
            content = response.choices[0].message.content
            if not content:
                raise ValueError("empty response from model")
            output = FAQAnswer.model_validate_json(content)
        except Exception as e:
            logger.error("Error in AI FAQ Assistant: %s", e, exc_info=True)
            return self._fallback(type(e).__name__)

        if not output.answer.strip():
            logger.error("Error in AI FAQ Assistant: blank answer")
            return self._fallback("blank answer")
        return AssistantResult(answer=output.answer, ok=True)

    def ask(self, query) -> str:
        return self.ask_result(query).answer
