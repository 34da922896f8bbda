"""
Hashing models: manifest rows and per-document failures produced by a hashing run.
"""

from pydantic import BaseModel, Field

from .transaction_record import utc_now_iso


class HashedDocument(BaseModel):
    """
    One validated data group document, ready to be written as a manifest row.

    ``property_cid`` holds the seed placeholder until the property's seed
    document has been resolved.

    Attributes:
        property_cid: CID of the property's seed document
        data_group_cid: Schema CID of the data group
        data_cid: CID of the resolved document
        file_path: Artifact path inside the output package
        source_path: Original input path
        processed_at: ISO-8601 time the document was hashed
    """

    property_cid: str
    data_group_cid: str
    data_cid: str
    file_path: str
    source_path: str
    processed_at: str = Field(default_factory=utc_now_iso)


class DocumentFailure(BaseModel):
    """A document that was excluded from the output, with the reason."""

    property_cid: str
    data_group_cid: str = ""
    file_path: str
    error_path: str = ""
    error_message: str
    current_value: str = ""
    kind: str = "validation"


class HashRunResult(BaseModel):
    """
    Outcome of hashing one or more properties.

    Attributes:
        documents: Manifest rows emitted, in processing order
        failures: Documents excluded from the output
        properties_processed: Properties whose seed resolved
        properties_failed: Properties that could not be identified
        artifacts_written: Number of artifacts written to the output package
    """

    documents: list[HashedDocument] = Field(default_factory=list)
    failures: list[DocumentFailure] = Field(default_factory=list)
    properties_processed: int = 0
    properties_failed: int = 0
    artifacts_written: int = 0
