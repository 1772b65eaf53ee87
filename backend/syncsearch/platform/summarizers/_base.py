"""Base summarizer class."""

from abc import abstractmethod
from typing import Optional

from syncsearch.schemas.data_editor import EditPlan
from syncsearch.schemas.synced_item import FetchedContent


class BaseSummarizer:
    """Turns content into summaries and answers questions from context.

    Implementations raise ``RateLimitedError`` for rate limits and
    ``GenerationError`` for everything else.
    """

    @abstractmethod
    async def summarize(
        self,
        content: FetchedContent,
        content_type: Optional[str] = None,
        name: Optional[str] = None,
        image: Optional[FetchedContent] = None,
    ) -> str:
        """Summarize one item's content."""
        pass

    @abstractmethod
    async def answer(
        self, question: str, context: str, image: Optional[FetchedContent] = None
    ) -> str:
        """Answer ``question`` using only ``context``."""
        pass

    @abstractmethod
    async def generate_edit_plan(
        self,
        csv_text: str,
        instruction: str,
        image: Optional[FetchedContent] = None,
        image_file_name: Optional[str] = None,
    ) -> EditPlan:
        """Propose an edit of ``csv_text`` following a natural-language instruction."""
        pass
