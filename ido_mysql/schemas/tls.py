# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
TLS input options and the resolved TLS bundle.

Security Requirements:
- Private key material: NEVER logged, NEVER included in __repr__ or __str__
- Inline key content is held as SecretStr until written to its managed file
"""
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, ConfigDict, SecretStr


class TLSOptions(BaseModel):
    """TLS client settings as supplied by the caller.

    Each of key/cert/CA is given either as a path to existing material or as
    inline PEM content, never both.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = False

    key_path: Optional[str] = None
    cert_path: Optional[str] = None
    cacert_path: Optional[str] = None
    capath: Optional[str] = None
    cipher: Optional[str] = None

    # Inline PEM material
    key: Optional[SecretStr] = None
    cert: Optional[str] = None
    cacert: Optional[str] = None


@dataclass(frozen=True)
class ManagedCredentialFile:
    """A credential file written from inline material."""
    artifact: str  # "key", "cert" or "cacert"
    path: str
    content: str = field(repr=False)
    mode: str = "0644"
    sensitive: bool = False


@dataclass(frozen=True)
class TLSBundle:
    """
    Resolved TLS client bundle with concrete paths.

    SECURITY WARNING:
    - managed_files may carry private key content
    - NEVER include it in __repr__ or __str__
    """
    identity: str
    key_path: str
    cert_path: str
    cacert_path: str
    capath: Optional[str] = None
    cipher: Optional[str] = None
    managed_files: tuple[ManagedCredentialFile, ...] = ()
    cert_fingerprint: Optional[str] = None

    def __repr__(self) -> str:
        """Safe repr - NEVER includes key material."""
        return (
            f"TLSBundle("
            f"identity={self.identity}, "
            f"key={self.key_path}, cert={self.cert_path}, ca={self.cacert_path})"
        )

    def __str__(self) -> str:
        return self.__repr__()

    def to_public_dict(self) -> dict:
        """Return only public information (no key material)."""
        return {
            "identity": self.identity,
            "key_path": self.key_path,
            "cert_path": self.cert_path,
            "cacert_path": self.cacert_path,
            "capath": self.capath,
            "cipher": self.cipher,
            "cert_fingerprint": self.cert_fingerprint,
        }
