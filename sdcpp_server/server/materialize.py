"""Turn the sd output file into a generation response."""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import TYPE_CHECKING

from sdcpp_server.server.errors import ServerError
from sdcpp_server.server.models import GenerationResponse, ImageData

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


async def remove_output(path: Path) -> None:
    """Delete the output file, logging instead of raising on failure."""
    try:
        await asyncio.to_thread(path.unlink)
    except OSError as e:
        logger.warning("could not remove %s: %s", path, e)


async def materialize(path: Path, created: int) -> GenerationResponse:
    """Read, encode and delete the image at ``path``.

    Raises:
        ServerError: The output file is missing or unreadable
    """
    try:
        image_bytes = await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise ServerError(f"Failed to read output image: {e}") from e

    b64 = base64.b64encode(image_bytes).decode("ascii")
    await remove_output(path)
    return GenerationResponse(created=created, data=[ImageData(b64_json=b64)])
