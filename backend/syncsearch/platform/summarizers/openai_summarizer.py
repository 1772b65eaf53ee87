"""OpenAI-backed summarization gateway."""

import base64
from typing import Any, Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from syncsearch.core.config import settings
from syncsearch.core.exceptions import GenerationError, RateLimitedError
from syncsearch.platform.summarizers._base import BaseSummarizer
from syncsearch.platform.utils.retry_utils import parse_retry_after
from syncsearch.schemas.data_editor import EditPlan
from syncsearch.schemas.synced_item import FetchedContent

NOT_FOUND_ANSWER = "I could not find an answer to your question in the available documents."
EMPTY_CONTENT_MESSAGE = "Could not summarize: Document is empty or content could not be read."
EMPTY_SUMMARY_MESSAGE = "Model returned an empty summary."

SUMMARY_PROMPT = """You are indexing documents for a question-answering system. \
Summarize the item "{name}" (content type: {content_type}) so that later questions \
about it can be answered from the summary alone.

Structure the summary with these sections:
1. Main Topic: what the item is about, in one or two sentences.
2. Key Entities: people, organizations, products, places, dates and figures it mentions.
3. Core Concepts: the main ideas, arguments or data it contains.
4. Actionable Information: decisions, deadlines, instructions, prices, contact details.

Be factual and specific. Do not add information that is not in the item."""

ANSWER_PROMPT = """You answer questions about a client's documents. Use only the \
context below, which lists each document's name followed by its summary.

If the answer is not contained in the context, reply with exactly:
{refusal}

Context:
{context}"""

EDIT_FAILED_MESSAGE = "AI failed to generate CSV."

EDIT_PROMPT = """You are a data operations agent editing a CSV document on a user's \
behalf. Instructions may be written in any language, and the CSV headers may be in a \
different language than the instruction; map the intent onto the right columns and rows.

Rules:
- "Delete"/"remove" a value clears that cell. Delete a whole row only when the user asks \
to remove the record itself.
- "Update"/"change" modifies exactly the values the user refers to.
- When an image file name is given, put that file name (not a URL) in the row the user \
refers to, using the existing image or photo column, or a new column named "Image".
- An attached image is visual context for identifying the row the user means.

Reply with a JSON object with these keys:
- "explanation": a short summary of exactly what you changed, in the user's language.
- "updated_csv": the complete edited CSV as a raw string.
- "requires_confirmation": true when the request is destructive or ambiguous."""


def _data_url(content: FetchedContent) -> str:
    encoded = base64.b64encode(content.data).decode("ascii")
    return f"data:{content.mime_type or 'application/octet-stream'};base64,{encoded}"


def _binary_part(content: FetchedContent, name: Optional[str]) -> dict[str, Any]:
    """Chat message part for binary content."""
    mime_type = content.mime_type or ""
    if mime_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": _data_url(content)}}
    if mime_type == "application/pdf":
        return {
            "type": "file",
            "file": {"filename": name or "document.pdf", "file_data": _data_url(content)},
        }
    raise GenerationError(f"Unsupported binary content type: {mime_type or 'unknown'}")


class OpenAISummarizer(BaseSummarizer):
    """Summarizer using the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        summary_model: Optional[str] = None,
        completion_model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Create the summarizer.

        Args:
            api_key: OpenAI API key
            summary_model: Model for summaries (defaults to settings.SUMMARY_MODEL)
            completion_model: Model for answers (defaults to settings.COMPLETION_MODEL)
            client: Pre-built client, mainly for tests
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.summary_model = summary_model or settings.SUMMARY_MODEL
        self.completion_model = completion_model or settings.COMPLETION_MODEL

    async def summarize(
        self,
        content: FetchedContent,
        content_type: Optional[str] = None,
        name: Optional[str] = None,
        image: Optional[FetchedContent] = None,
    ) -> str:
        """Summarize text, image or PDF content."""
        content_type = content_type or content.mime_type or "unknown"
        prompt = SUMMARY_PROMPT.format(name=name or "untitled", content_type=content_type)

        if content.is_binary:
            if not content.data:
                raise GenerationError(EMPTY_CONTENT_MESSAGE)
            parts = [{"type": "text", "text": "Summarize this item."}, _binary_part(content, name)]
        else:
            text = (content.text or "").strip()
            if not text:
                raise GenerationError(EMPTY_CONTENT_MESSAGE)
            parts = [{"type": "text", "text": text[: settings.MAX_SUMMARY_INPUT_CHARS]}]

        if image is not None:
            parts.append(_binary_part(image, None))

        summary = await self._complete(
            self.summary_model,
            [{"role": "system", "content": prompt}, {"role": "user", "content": parts}],
        )
        if not summary.strip():
            raise GenerationError(EMPTY_SUMMARY_MESSAGE)
        return summary.strip()

    async def answer(
        self, question: str, context: str, image: Optional[FetchedContent] = None
    ) -> str:
        """Answer from the given context, or return the fixed refusal."""
        parts: list[dict[str, Any]] = [{"type": "text", "text": question}]
        if image is not None:
            parts.append(_binary_part(image, None))

        answer = await self._complete(
            self.completion_model,
            [
                {
                    "role": "system",
                    "content": ANSWER_PROMPT.format(refusal=NOT_FOUND_ANSWER, context=context),
                },
                {"role": "user", "content": parts},
            ],
        )
        return answer.strip() or NOT_FOUND_ANSWER

    async def generate_edit_plan(
        self,
        csv_text: str,
        instruction: str,
        image: Optional[FetchedContent] = None,
        image_file_name: Optional[str] = None,
    ) -> EditPlan:
        """Ask the model for a complete edited CSV plus an explanation."""
        prompt = f"Current CSV content:\n```csv\n{csv_text}\n```\n\nUser request: {instruction}"
        if image_file_name:
            prompt += (
                f"\n\nThe user uploaded an image file named {image_file_name!r}. "
                "Insert this file name into the row the request refers to."
            )
        parts: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        if image is not None:
            parts.append(_binary_part(image, None))

        raw = await self._complete(
            self.completion_model,
            [{"role": "system", "content": EDIT_PROMPT}, {"role": "user", "content": parts}],
            response_format={"type": "json_object"},
        )
        try:
            return EditPlan.model_validate_json(raw)
        except ValidationError as e:
            raise GenerationError(EDIT_FAILED_MESSAGE) from e

    async def _complete(self, model: str, messages: list[dict[str, Any]], **kwargs: Any) -> str:
        """Run one chat completion, translating OpenAI errors."""
        try:
            response = await self.client.chat.completions.create(
                model=model, messages=messages, **kwargs
            )
        except openai.RateLimitError as e:
            raise RateLimitedError(
                f"OpenAI rate limit: {e.message}",
                retry_after=parse_retry_after(e.response.headers),
            ) from e
        except openai.APIConnectionError as e:
            raise GenerationError(f"Could not reach OpenAI: {e}", retryable=True) from e
        except openai.InternalServerError as e:
            raise GenerationError(f"OpenAI server error: {e.message}", retryable=True) from e
        except openai.APIError as e:
            raise GenerationError(f"OpenAI request failed: {e.message}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
