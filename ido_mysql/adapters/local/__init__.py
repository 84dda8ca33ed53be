# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
from .adapter import PACKAGE_COMMANDS, LocalRuntime

__all__ = ["PACKAGE_COMMANDS", "LocalRuntime"]
