import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from sheettrack.util.settings import Settings

logger = logging.getLogger(__name__)


class Authentication:
    def __init__(self):
        super(Authentication, self).__init__

    async def api_key(x_api_key: Optional[str] = Header(None)):
        """
        Requires the x-api-key header to match the configured key.
        With no key configured every request is let through.
        """
        configured = Settings().api.key
        if configured is None or not configured.get_secret_value():
            logger.warning("API key is not set. API key auth is effectively disabled.")
            return

        if not x_api_key or not hmac.compare_digest(
            x_api_key.encode("utf-8"), configured.get_secret_value().encode("utf-8")
        ):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
            )
