# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Convergence runtime adapters.

This package defines the abstract runtime contract and provides the local
host implementation.
"""

from .runtime_interface import ApplyResult, CommandResult, ConvergenceRuntime

__all__ = ["ApplyResult", "CommandResult", "ConvergenceRuntime"]
