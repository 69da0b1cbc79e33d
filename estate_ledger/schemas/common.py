"""
Shared Pydantic schemas and field types.

The error models document the error envelope in OpenAPI. ``LedgerAmount``
is the request-side type for money and token quantities: a positive decimal
with at most six fractional digits. Pydantic serializes ``Decimal`` as a JSON
string, so responses never pass amounts through binary floats.
"""

from decimal import Decimal
from typing import Annotated, List

from pydantic import BaseModel, Field

LedgerAmount = Annotated[
    Decimal,
    Field(gt=0, max_digits=18, decimal_places=6, examples=["1500.00"]),
]

Reference = Annotated[
    str,
    Field(
        min_length=1,
        max_length=64,
        description="UUID or human-readable code (e.g. PROP-000003)",
    ),
]


class ErrorResponse(BaseModel):
    """Error envelope returned by every non-validation error handler."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(
        ...,
        description="Human-readable error description",
        examples=["Requested 50.000000 tokens but only 10.000000 are available"],
    )


class ValidationErrorDetail(BaseModel):
    """Single field-level validation failure."""

    field: str = Field(
        ...,
        description="Path to the invalid field",
        examples=["body -> tokens"],
    )
    message: str = Field(
        ...,
        description="Explanation of the validation failure",
        examples=["Input should be greater than 0"],
    )


class ValidationErrorResponse(BaseModel):
    """Response body for 422 request-validation failures."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(
        default="Validation failed",
        description="Summary message",
    )
    details: List[ValidationErrorDetail] = Field(..., description="Per-field validation failures")
