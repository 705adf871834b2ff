"""Repository for binary content metadata."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from roster_backup.models.binary_content import BinaryContent

logger = logging.getLogger(__name__)


class BinaryContentRepository:
    """
    Repository for binary content metadata rows.

    Only metadata lives here. Bytes are written and deleted separately
    through BinaryContentStorage, keyed by the row id.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        file_name: Optional[str] = None,
        content_type: Optional[str] = None
    ) -> BinaryContent:
        """
        Create a metadata row and commit it so its id is usable immediately.

        Args:
            file_name: Final name, if already known
            content_type: MIME type, if already known

        Returns:
            The created BinaryContent with its id assigned
        """
        content = BinaryContent(file_name=file_name, content_type=content_type)
        self.db.add(content)
        self.db.commit()
        self.db.refresh(content)
        logger.debug(f"Created binary content {content.id}")
        return content

    def get_by_id(self, content_id: int) -> Optional[BinaryContent]:
        return self.db.get(BinaryContent, content_id)

    def finalize(
        self,
        content_id: int,
        size: int,
        file_name: Optional[str] = None,
        content_type: Optional[str] = None
    ) -> Optional[BinaryContent]:
        """
        Record the final name, type and size once the bytes are stored.

        Returns:
            Updated BinaryContent or None if the row no longer exists
        """
        content = self.get_by_id(content_id)
        if not content:
            logger.warning(f"No binary content found for id {content_id}")
            return None

        if file_name is not None:
            content.file_name = file_name
        if content_type is not None:
            content.content_type = content_type
        content.size = size

        self.db.commit()
        self.db.refresh(content)
        return content

    def delete(self, content_id: int) -> bool:
        """
        Delete a metadata row.

        Returns:
            True if deleted, False if not found
        """
        content = self.get_by_id(content_id)
        if not content:
            return False

        self.db.delete(content)
        self.db.commit()
        logger.debug(f"Deleted binary content {content_id}")
        return True
