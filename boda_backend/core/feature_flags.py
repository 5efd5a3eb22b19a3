"""Operator switches for turning features off without a redeploy.

Set ``FEATURE_BOOKINGS_ENABLED=false`` or ``FEATURE_PAYMENTS_ENABLED=false``
in the environment. Lifecycle actions on existing bookings are not affected.
"""

import logging
from typing import Literal

from boda_backend.config import settings
from boda_backend.core.exceptions import FeatureDisabled

logger = logging.getLogger(__name__)

Feature = Literal["bookings", "payments"]

DISABLED_MESSAGES: dict[str, str] = {
    "bookings": "New bookings are temporarily unavailable. Please try again later.",
    "payments": "Payments are temporarily unavailable. Please try again later.",
}


def is_feature_enabled(feature: Feature) -> bool:
    return bool(getattr(settings, f"feature_{feature}_enabled"))


def assert_feature_enabled(feature: Feature) -> None:
    if not is_feature_enabled(feature):
        logger.warning(f"feature_disabled_blocked feature={feature}")
        raise FeatureDisabled(feature, DISABLED_MESSAGES[feature])
