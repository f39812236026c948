"""Pydantic schemas for indexed documents and search results."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class SearchDocument(BaseModel):
    """One indexed content item.

    Attributes:
        id: Store-assigned identity, None until the document is inserted.
        post_id: Identifier of the external content item.
        user_id: Identifier of the content author.
        content: Free text used for full-text matching.
        created_at: When the content was originally created (UTC).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int | None = None
    post_id: str = Field(alias="postId")
    user_id: str = Field(alias="userId")
    content: str
    created_at: datetime = Field(alias="createdAt")

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        """Treat naive timestamps as UTC and normalize aware ones to UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class SearchHit(BaseModel):
    """A matched document with its relevance score (higher is better).

    Attributes:
        document: The matched document.
        score: Relevance score derived from BM25.
    """

    document: SearchDocument
    score: float


class SearchResult(BaseModel):
    """Public representation of a document in the query API."""

    model_config = ConfigDict(populate_by_name=True)

    post_id: str = Field(serialization_alias="postId")
    user_id: str = Field(serialization_alias="userId")
    content: str
    created_at: datetime = Field(serialization_alias="createdAt")

    @classmethod
    def from_document(cls, document: SearchDocument) -> "SearchResult":
        """Project an indexed document onto the public fields."""
        return cls(
            post_id=document.post_id,
            user_id=document.user_id,
            content=document.content,
            created_at=document.created_at,
        )


_DOCUMENT_LIST = TypeAdapter(list[SearchDocument])


def encode_documents(documents: list[SearchDocument]) -> bytes:
    """Serialize a result set for the cache."""
    return _DOCUMENT_LIST.dump_json(documents, by_alias=True)


def decode_documents(payload: bytes) -> list[SearchDocument]:
    """Deserialize a cached result set.

    Raises:
        pydantic.ValidationError: If the payload is not a valid result set.
    """
    return _DOCUMENT_LIST.validate_json(payload)
