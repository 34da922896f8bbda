"""
DataItem model: the unit submitted on-chain (ephemeral).
"""

from pydantic import BaseModel, Field, field_validator


class DataItem(BaseModel):
    """
    One (propertyCid, dataGroupCid, dataCid) triple read from a manifest row.

    Attributes:
        property_cid: CID of the property's seed document
        data_group_cid: CID of the schema describing the data group
        data_cid: CID of the submitted document's canonical bytes
        file_path: Source path recorded in the manifest (audit only)
        uploaded_at: Upload timestamp recorded in the manifest, if any
        row_number: 1-based data row in the source manifest
    """

    property_cid: str = Field(..., min_length=1)
    data_group_cid: str = Field(..., min_length=1)
    data_cid: str = Field(..., min_length=1)
    file_path: str | None = None
    uploaded_at: str | None = None
    row_number: int | None = None

    @field_validator("property_cid", "data_group_cid", "data_cid")
    @classmethod
    def strip_cid(cls, v: str) -> str:
        """Strip whitespace and the leading dot some manifests carry."""
        v = v.strip()
        if v.startswith("."):
            v = v[1:]
        if not v:
            raise ValueError("CID cannot be empty")
        return v

    @property
    def consensus_key(self) -> tuple[str, str]:
        """Key of the on-chain consensus slot this item targets."""
        return (self.property_cid, self.data_group_cid)

    def describe(self) -> str:
        return f"{self.property_cid}/{self.data_group_cid}/{self.data_cid}"

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "property_cid": "bafkreih2yy3z6vvk2rkb7xwbqsmjvyyb4p6ya3q7xbkpfz5fpkdrqgyaum",
                "data_group_cid": "bafkreihuw7ldyfwdvm4rqqhbzmypcewf3e2kj3d4bxv5v4ghgcekxcmtfe",
                "data_cid": "baguqeeranmq6ojbgp4lrtj7cfxj5bnbvvm3s2yklkl7qdjyuzfnx6gtvhnfq",
                "file_path": "52434205310037080/bafkreihuw7ldyfwdvm4rqqhbzmypcewf3e2kj3d4bxv5v4ghgcekxcmtfe.json",
                "row_number": 1
            }
        }
