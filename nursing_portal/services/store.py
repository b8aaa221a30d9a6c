"""Backend boundary: parse-and-validate reads from MongoDB."""
import logging
from typing import Awaitable, TypeVar

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pydantic import ValidationError

from nursing_portal.errors import DocumentDecodeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def decoded(pending: Awaitable[T], collection: str) -> T:
    """Await a Beanie read, turning schema mismatches into DocumentDecodeError."""
    try:
        return await pending
    except ValidationError as e:
        logger.error(f"Malformed document in {collection}: {e}")
        raise DocumentDecodeError(collection, f"{e.error_count()} invalid field(s)") from e


def safe_object_id(value: str | None) -> PydanticObjectId | None:
    if not value:
        return None
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        return None
