"""Environment detection utilities for production vs development"""

import os
import logging

logger = logging.getLogger(__name__)


def get_environment_name() -> str:
    """
    Get the normalized environment name

    Returns:
        str: 'production' or 'development'
    """
    return 'production' if is_production_environment() else 'development'


def is_production_environment() -> bool:
    """
    Check if we're running in production

    Returns:
        bool: True if in production, False if in development
    """
    # ENVIRONMENT wins over every other indicator
    environment = os.getenv('ENVIRONMENT', '').lower()
    if environment == 'development':
        return False
    elif environment == 'production':
        return True

    # Container deployments set one of these
    return (
        os.getenv('RAILWAY_ENVIRONMENT') is not None or
        os.getenv('KUBERNETES_SERVICE_HOST') is not None
    )
