"""Data models for the catalog bundle payload.

The models mirror the FHIR ``Bundle`` / ``ValueSet`` shapes returned by the
catalog (https://build.fhir.org/bundle.html, https://build.fhir.org/valueset.html).
Unknown fields are kept so an entry can be archived verbatim.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class CatalogModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def null_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        # JSON null falls back to the field default rather than failing the page
        if value is None and info.field_name is not None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value

    def to_payload(self) -> Dict[str, Any]:
        """Dump back to the camelCase JSON shape, keeping only fields that were set."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class Link(CatalogModel):
    """Navigation link tagged by relation (``self``, ``next``, ...)."""

    relation: str = ""
    url: str = ""


class Concept(CatalogModel):
    code: str = ""
    display: str = ""


class ConceptSet(CatalogModel):
    version: Optional[str] = None
    system: Optional[str] = None
    concept: List[Concept] = Field(default_factory=list)


class Composition(CatalogModel):
    locked_date: Optional[str] = Field(default=None, alias="lockedDate")
    inactive: bool = False
    include: List[ConceptSet] = Field(default_factory=list)


class Identifier(CatalogModel):
    use: Optional[str] = None
    system: Optional[str] = None
    value: Optional[str] = None


class ValueSetResource(CatalogModel):
    """One catalog record."""

    resource_type: str = Field(default="ValueSet", alias="resourceType")
    id: str = ""
    version: Optional[str] = None
    name: str = ""
    title: str = ""
    status: Optional[str] = None
    experimental: bool = False
    date: str = ""
    description: Optional[str] = None
    publisher: str = ""
    identifier: List[Identifier] = Field(default_factory=list)
    compose: Composition = Field(default_factory=Composition)


class Entry(CatalogModel):
    full_url: str = Field(default="", alias="fullUrl")
    resource: ValueSetResource = Field(default_factory=ValueSetResource)


class Meta(CatalogModel):
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")


class Page(CatalogModel):
    """One fetched bundle: declared total, navigation links and ordered entries."""

    resource_type: str = Field(default="Bundle", alias="resourceType")
    id: Optional[str] = None
    type: Optional[str] = None
    total: int = 0
    meta: Optional[Meta] = None
    link: List[Link] = Field(default_factory=list)
    entry: List[Entry] = Field(default_factory=list)

    @property
    def records(self) -> List[ValueSetResource]:
        return [entry.resource for entry in self.entry]

    @property
    def is_empty(self) -> bool:
        return not self.entry

    @property
    def last_record_id(self) -> Optional[str]:
        if not self.entry:
            return None
        return self.entry[-1].resource.id

    def link_for(self, relation: str) -> str:
        """Return the stripped target of the last link tagged ``relation``, or ``""``."""
        target = ""
        for link in self.link:
            if link.relation == relation:
                target = link.url.strip()
        return target
