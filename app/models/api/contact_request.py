"""
Contact, research and product-context API request models.
"""

from pydantic import BaseModel, Field


class CreateContactRequest(BaseModel):
    """Request for creating a contact."""

    email: str = Field(..., min_length=3, max_length=320, description="Contact email address")
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    title: str | None = Field(default=None, max_length=200)
    company: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=5000)


class UpdateContactRequest(BaseModel):
    """Partial update; email cannot be changed after creation."""

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    title: str | None = Field(default=None, max_length=200)
    company: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=5000)


class RetryResearchRequest(BaseModel):
    include_failed: bool = Field(default=False, description="Also retry contacts in failed")


class ProductContextRequest(BaseModel):
    """Request for creating or replacing the user's product context."""

    product_name: str = Field(..., min_length=1, max_length=200)
    product_description: str = Field(..., min_length=1)
    target_audience: str = Field(..., min_length=1)
    pain_points: str = Field(..., min_length=1)
    value_proposition: str = Field(..., min_length=1)
    tone: str | None = Field(default="professional", max_length=50)
