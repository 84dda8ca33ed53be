# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
Credential store collaborator.

The store owns acquisition and storage of TLS artifacts. This package only
registers the resolved bundle under its identity so that the store and the
reload notification agree on which credentials the feature uses.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..schemas.tls import TLSBundle

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """Abstract credential store. register() MUST be idempotent."""

    @abstractmethod
    async def register(self, identity: str, bundle: TLSBundle) -> bool:
        """Register the bundle under identity. Returns True if anything changed."""
        ...

    @abstractmethod
    async def lookup(self, identity: str) -> Optional[TLSBundle]:
        ...

    @property
    @abstractmethod
    def store_name(self) -> str:
        ...


class InMemoryCredentialStore(CredentialStore):
    """
    Process-local credential store for development and testing.

    WARNING: Not for production use! Registrations are lost on exit.
    """

    def __init__(self):
        self._bundles: dict[str, TLSBundle] = {}
        logger.warning("InMemoryCredentialStore initialized - NOT FOR PRODUCTION USE")

    @property
    def store_name(self) -> str:
        return "memory"

    async def register(self, identity: str, bundle: TLSBundle) -> bool:
        if self._bundles.get(identity) == bundle:
            return False
        self._bundles[identity] = bundle
        logger.info(f"Registered TLS bundle {bundle}")
        return True

    async def lookup(self, identity: str) -> Optional[TLSBundle]:
        return self._bundles.get(identity)

    @property
    def identities(self) -> list[str]:
        return list(self._bundles)
