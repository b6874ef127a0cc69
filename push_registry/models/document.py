from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel

ContentT = TypeVar("ContentT", bound=BaseModel)


class Document(BaseModel, Generic[ContentT]):
    """A stored payload together with its Firestore metadata."""

    id: str
    path: str
    last_update: datetime
    content: ContentT
