"""Block store access for flomosync."""

from .base import BlockStoreClient
from .manager import BlockDatabase
from .html import split_html

__all__ = ["BlockStoreClient", "BlockDatabase", "split_html"]
