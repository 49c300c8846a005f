"""
Block store client interface for flomosync.

This module defines the abstract interface the sync uses to read and mutate
the hierarchical block store notes are imported into.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Callable, List, Literal, Optional, TypeVar

from ..models import Block, BlockProperty, QueryDescription

T = TypeVar("T")

Position = Literal["firstChild", "lastChild"]


class BlockStoreClient(ABC):
    """
    Abstract base class for block stores.

    Blocks read or created through the client are kept materialized in a
    local cache; `cached` answers from that cache without touching the store.
    """

    @abstractmethod
    def cached(self, block_id: int) -> Optional[Block]:
        """Return the locally materialized block, or None."""
        pass

    @abstractmethod
    def get_block(self, block_id: int) -> Optional[Block]:
        """Fetch one block from the store; None if it does not exist."""
        pass

    @abstractmethod
    def get_blocks(self, block_ids: List[int]) -> List[Block]:
        """Fetch several blocks in one call, in the order of `block_ids`, skipping missing ones."""
        pass

    @abstractmethod
    def insert_block(
        self,
        parent: Optional[Block],
        position: Position,
        content: Optional[str] = None,
        kind: str = "text",
        src: Optional[str] = None,
        created: Optional[datetime] = None,
        modified: Optional[datetime] = None,
    ) -> int:
        """Insert a block under `parent` and return its identifier."""
        pass

    @abstractmethod
    def batch_insert_html(self, parent: Block, position: Position, html: str) -> List[int]:
        """Insert rich text content as consecutive children of `parent`."""
        pass

    @abstractmethod
    def delete_blocks(self, block_ids: List[int]) -> None:
        """Delete blocks together with their descendants."""
        pass

    @abstractmethod
    def set_properties(self, block_ids: List[int], properties: List[BlockProperty]) -> None:
        """Set properties on blocks, replacing same-named ones."""
        pass

    @abstractmethod
    def insert_tag(
        self,
        block_id: int,
        tag_name: str,
        properties: Optional[List[BlockProperty]] = None,
    ) -> int:
        """Attach a tag to a block and return the tag block's identifier."""
        pass

    @abstractmethod
    def query(self, description: QueryDescription) -> List[int]:
        """Return identifiers of blocks matching a structured query."""
        pass

    @abstractmethod
    def get_journal_block(self, day: date) -> Optional[Block]:
        """Return the day-root block of a calendar day, or None."""
        pass

    @abstractmethod
    def run_grouped(self, fn: Callable[[], T]) -> T:
        """Run `fn` as one atomic group of mutations."""
        pass

    @abstractmethod
    def upload_binary(self, media_type: str, payload: bytes) -> str:
        """Store binary content and return its store-local asset reference."""
        pass
