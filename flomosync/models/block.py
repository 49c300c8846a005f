"""
Block store models for flomosync.

Blocks are the nodes of the hierarchical document store that notes are
imported into. A block has an optional text label, ordered children, typed
properties and zero or more tag instances. A tag is itself a block; the
tag instance attached to a block carries its own property values.
"""

from datetime import date, datetime
from enum import IntEnum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


TAGS_PROPERTY = "_tags"
"""Reserved property listing the tags attached to a block."""


class PropertyType(IntEnum):
    """Value type of a block property."""

    JSON = 0
    IDENTIFIER = 1
    TAG_LIST = 2


class BlockProperty(BaseModel):
    """
    A typed property on a block or a tag instance.

    A property without a value declares the property on a tag block so
    that instances of the tag may carry it.
    """

    name: str
    type: PropertyType = PropertyType.JSON
    value: Any = None


class TagRef(BaseModel):
    """
    A tag instance attached to a block.
    """

    id: int = Field(..., description="Identifier of the tag instance")
    tag_id: int = Field(..., description="Identifier of the tag block")
    tag_name: str = Field(..., description="Name (alias) of the tag block")
    data: List[BlockProperty] = Field(
        default_factory=list,
        description="Property values carried by this instance"
    )

    def get(self, name: str) -> Optional[BlockProperty]:
        return next((p for p in self.data if p.name == name), None)


class Block(BaseModel):
    """
    A node in the block store.
    """

    id: int = Field(..., description="Store identifier of the block")

    parent: Optional[int] = Field(
        default=None,
        description="Identifier of the parent block, None for root blocks"
    )

    text: Optional[str] = Field(
        default=None,
        description="Plain text label of the block"
    )

    kind: str = Field(
        default="text",
        description="Block kind: 'text', 'image', 'audio', 'tag' or 'journal'"
    )

    src: Optional[str] = Field(
        default=None,
        description="Asset reference for media blocks"
    )

    alias: Optional[str] = Field(
        default=None,
        description="Tag name for tag blocks"
    )

    journal_date: Optional[date] = Field(
        default=None,
        description="Calendar day for journal (day-root) blocks"
    )

    children: List[int] = Field(
        default_factory=list,
        description="Ordered identifiers of child blocks"
    )

    properties: List[BlockProperty] = Field(
        default_factory=list,
        description="Ordered typed properties of the block"
    )

    refs: List[TagRef] = Field(
        default_factory=list,
        description="Tag instances attached to the block"
    )

    created: Optional[datetime] = None
    modified: Optional[datetime] = None

    def get_property(self, name: str) -> Optional[BlockProperty]:
        return next((p for p in self.properties if p.name == name), None)

    def has_property(self, name: str) -> bool:
        return self.get_property(name) is not None

    @property
    def tag_names(self) -> List[str]:
        return [ref.tag_name for ref in self.refs]


class PropertyMatch(BaseModel):
    """Equality condition on a tag instance property."""

    name: str
    value: Any


class TagCondition(BaseModel):
    """Matches blocks carrying the named tag whose instance satisfies all property matches."""

    name: str
    properties: List[PropertyMatch] = Field(default_factory=list)


class QueryDescription(BaseModel):
    """
    Structured query over tagged blocks.

    All conditions must hold. Results are block identifiers in ascending
    order, truncated to `page_size` when given.
    """

    conditions: List[TagCondition] = Field(default_factory=list)
    page_size: Optional[int] = None
