"""
Shared-secret authentication for calls coming from the billing system
"""
import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException

from config import get_config
from utils.environment import is_production_environment

logger = logging.getLogger(__name__)


def verify_bridge_token(x_bridge_token: Optional[str] = Header(None)) -> None:
    """Reject hook calls that do not carry the configured bridge token"""
    expected = get_config().server.bridge_token
    if not expected:
        if is_production_environment():
            logger.error("❌ CRITICAL: BRIDGE_API_TOKEN not configured - rejecting hook call")
            raise HTTPException(status_code=503, detail="Bridge token not configured")
        return

    if not x_bridge_token or not hmac.compare_digest(x_bridge_token, expected):
        logger.warning("⚠️ Hook call rejected: invalid bridge token")
        raise HTTPException(status_code=401, detail="Invalid bridge token")
