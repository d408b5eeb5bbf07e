# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Delivery ledger domain.

Records every report notification dispatch attempt and tracks its
delivery status afterwards.
"""

from src.domains.messaging.ledger import (
    Correlation,
    MessageLog,
    MessageLogRepository,
    NewMessageLog,
)
from src.domains.messaging.tracker import DeliveryStatusTracker

__all__ = [
    "Correlation",
    "DeliveryStatusTracker",
    "MessageLog",
    "MessageLogRepository",
    "NewMessageLog",
]
