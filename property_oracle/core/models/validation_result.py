"""
DocumentValidationResult model: outcome of validating one document against its schema.
"""

from pydantic import BaseModel, Field, field_validator


class DocumentValidationResult(BaseModel):
    """
    Pass/fail plus error list returned by a document validator.

    Attributes:
        valid: Overall validation status
        errors: One entry per violation, each with "path" and "message"
    """

    valid: bool
    errors: list[dict[str, str]] = Field(default_factory=list)

    @field_validator("errors")
    @classmethod
    def check_valid_consistency(cls, v, info):
        """Validate that valid=True implies errors is empty."""
        if info.data.get("valid") and len(v) > 0:
            raise ValueError("valid=True but errors is not empty")
        return v

    @classmethod
    def ok(cls) -> "DocumentValidationResult":
        return cls(valid=True)

    class Config:
        json_schema_extra = {
            "example": {
                "valid": False,
                "errors": [
                    {"path": "/relationships/property_has_address", "message": "'/' is a required property"}
                ]
            }
        }
