# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Service reload decision."""

from enum import Enum


class ReloadDecision(str, Enum):
    FIRE = "fire"
    SKIP = "skip"


def decide_reload(previous_enabled: bool, enabled: bool, content_changed: bool) -> ReloadDecision:
    """Decide whether the daemon reload fires for this pass.

    Only an enabled feature reloads the daemon: when it was just enabled, or
    when its configuration or TLS bundle changed. Disabling never reloads.
    """
    if not enabled:
        return ReloadDecision.SKIP
    if content_changed or not previous_enabled:
        return ReloadDecision.FIRE
    return ReloadDecision.SKIP
