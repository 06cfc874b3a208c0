"""Shared schema base for request bodies stored as documents."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DocumentSchema(BaseModel):
    """Accepts camelCase (stored form) or snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self, partial: bool = False) -> Dict[str, Any]:
        """Fields in stored (camelCase, JSON-safe) form.

        With ``partial`` only the fields present in the request are returned,
        and an explicit null leaves the stored value unchanged.
        """
        return self.model_dump(by_alias=True, exclude_unset=partial, exclude_none=partial, mode="json")


class IdList(DocumentSchema):
    """Body for bulk actions over record ids."""

    ids: List[str] = Field(..., min_length=1)
