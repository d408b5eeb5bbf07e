"""Acadesk report dispatch backend.

Generates student learning reports from academy activity records and
delivers report notifications to guardians over SMS, LMS, Kakao Alimtalk
and email, keeping an append-only ledger of every delivery attempt.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
