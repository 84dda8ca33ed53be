# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Pure convergence logic: resource descriptions, ordering, rendering and decisions.

Nothing in this package performs I/O.
"""
