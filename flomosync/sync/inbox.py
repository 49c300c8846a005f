"""
Inbox resolution for flomosync.
"""

import logging
from typing import List, Optional

from ..database import BlockStoreClient
from ..models import Block


def _is_inbox(block: Block, inbox_name: str) -> bool:
    return (block.text or "").strip() == inbox_name


def ensure_inbox(store: BlockStoreClient, day_root: Block, inbox_name: str) -> Block:
    """
    Find or create the inbox block under a day-root.

    Children already materialized locally are checked first, in child
    order; the rest are fetched with a single store call and checked in
    their original order. The first child whose trimmed text equals
    `inbox_name` wins. Without a match a new inbox is appended as the
    last child of the day-root.

    Args:
        store: The block store
        day_root: Journal block of the day
        inbox_name: Text identifying the inbox

    Returns:
        The inbox block
    """
    not_in_memory: List[int] = []

    for block_id in day_root.children:
        block = store.cached(block_id)
        if block is not None:
            if _is_inbox(block, inbox_name):
                return block
        else:
            not_in_memory.append(block_id)

    inbox: Optional[Block] = None
    if not_in_memory:
        fetched = store.get_blocks(not_in_memory)
        inbox = next((block for block in fetched if _is_inbox(block, inbox_name)), None)

    if inbox is None:
        inbox_id = store.insert_block(day_root, "lastChild", inbox_name)
        logging.info(f"Created inbox '{inbox_name}' ({inbox_id}) under block {day_root.id}")
        inbox = store.cached(inbox_id) or store.get_block(inbox_id)

    return inbox
