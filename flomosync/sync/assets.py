"""
Asset import for flomosync.
"""

import logging
from typing import Optional

from ..database import BlockStoreClient
from ..sources import SourceAdapter, SourceError


class AssetImporter:
    """
    Turns remote file references into store-local asset references.
    """

    def __init__(self, source: SourceAdapter, store: BlockStoreClient):
        self.source = source
        self.store = store

    def import_asset(self, url: str) -> Optional[str]:
        """
        Download a file from the source and upload it to the store.

        No retry is attempted; a failed download yields None so the caller
        can skip the file. Upload failures propagate.

        Args:
            url: Remote location of the file

        Returns:
            The store-local asset reference, or None if the download failed
        """
        try:
            media_type, payload = self.source.fetch_binary(url)
        except SourceError as e:
            logging.warning(f"Skipping asset {url}: {e}")
            return None

        asset_ref = self.store.upload_binary(media_type, payload)
        logging.info(f"Imported asset {url} as {asset_ref}")
        return asset_ref
