# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for Acadesk report dispatch.

Domains:
    report: Report generation, formatting, dispatch and failure classification.
    messaging: Delivery ledger and delivery status tracking.
"""
