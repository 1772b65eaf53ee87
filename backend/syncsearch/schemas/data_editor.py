"""Schemas for natural-language edits of tabular items."""

from typing import Optional

from pydantic import BaseModel, Field


class EditPlan(BaseModel):
    """Proposed edit of one CSV document, reviewed before it is applied."""

    explanation: str = Field(..., description="What the edit changes, in the user's language")
    updated_csv: str = Field(..., min_length=1, description="The complete edited CSV")
    requires_confirmation: bool = Field(
        False, description="True when the edit is destructive or the request was ambiguous"
    )
    original_csv: Optional[str] = Field(None, description="The CSV the plan was made from")


class EditPlanRequest(BaseModel):
    """Instruction for an edit plan."""

    instruction: str = Field(..., min_length=1)
    image_base64: Optional[str] = Field(
        None, description="Optional image (base64) used as visual context"
    )
    image_mime_type: str = "image/png"
    image_file_name: Optional[str] = Field(
        None, description="File name of an uploaded image to reference in the edited rows"
    )


class ApplyEditRequest(BaseModel):
    """Confirmed CSV to write back to the source."""

    updated_csv: str = Field(..., min_length=1)
