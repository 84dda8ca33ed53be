# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""
TLS client bundle resolution and provisioning.

Each artifact (key, cert, CA) is supplied either as a path to existing
material or as inline PEM content. Inline content is validated here and
written to managed files under the daemon's ssl_dir.

Resolution happens while the catalog is compiled, so an invalid or ambiguous
bundle fails before anything is applied.

Security:
- Private key content is never logged
- Validation errors never echo the PEM input
"""
import hashlib
from typing import Optional

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from ..config import Icinga2Base
from ..core.ordering import Catalog
from ..core.resources import FileResource, TLSClientResource
from ..errors import ConfigurationError, IdoErrorCode
from ..logging_config import get_logger
from ..schemas.tls import ManagedCredentialFile, TLSBundle, TLSOptions

logger = get_logger(__name__)

TLS_IDENTITY = "IdoMysqlConnection_ido-mysql"

_STEP = "tls"

# artifact -> (path field, inline field, file suffix, mode, sensitive)
_ARTIFACTS = {
    "key": ("key_path", "key", ".key", "0600", True),
    "cert": ("cert_path", "cert", ".crt", "0644", False),
    "cacert": ("cacert_path", "cacert", "_ca.crt", "0644", False),
}


def _inline_value(options: TLSOptions, field: str) -> Optional[str]:
    value = getattr(options, field)
    if value is None:
        return None
    if hasattr(value, "get_secret_value"):
        value = value.get_secret_value()
    return value or None


def _public_key_der(public_key) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


class TLSProvisioner:
    """Resolves TLS options into a bundle and declares its resources."""

    def __init__(self, base: Icinga2Base, identity: str = TLS_IDENTITY):
        self.base = base
        self.identity = identity

    def managed_path(self, artifact: str) -> str:
        suffix = _ARTIFACTS[artifact][2]
        return f"{self.base.ssl_dir}/{self.identity}{suffix}"

    def resolve(self, options: TLSOptions) -> Optional[TLSBundle]:
        """Resolve options into a TLSBundle, or None when TLS is disabled.

        Raises:
            ConfigurationError: path and inline content given for the same
                artifact, an artifact missing, or inline PEM that does not parse
        """
        if not options.enabled:
            return None

        paths: dict[str, str] = {}
        inline: dict[str, str] = {}
        ambiguous = []
        missing = []
        for artifact, (path_field, inline_field, _, _, _) in _ARTIFACTS.items():
            path = getattr(options, path_field)
            content = _inline_value(options, inline_field)
            if path and content:
                ambiguous.append(artifact)
            elif path:
                paths[artifact] = path
            elif content:
                inline[artifact] = content
            else:
                missing.append(artifact)

        if ambiguous:
            raise ConfigurationError(
                f"Both a path and inline content given for TLS {', '.join(ambiguous)}",
                code=IdoErrorCode.TLS_MATERIAL_AMBIGUOUS,
                step=_STEP,
                details={"artifacts": ambiguous},
            )
        if missing:
            raise ConfigurationError(
                f"No path or inline content given for TLS {', '.join(missing)}",
                code=IdoErrorCode.TLS_MATERIAL_INSUFFICIENT,
                step=_STEP,
                details={"artifacts": missing},
            )

        fingerprint = self._validate_inline(inline)

        managed = []
        for artifact, content in inline.items():
            _, _, _, mode, sensitive = _ARTIFACTS[artifact]
            path = self.managed_path(artifact)
            paths[artifact] = path
            managed.append(
                ManagedCredentialFile(
                    artifact=artifact, path=path, content=content, mode=mode, sensitive=sensitive
                )
            )

        bundle = TLSBundle(
            identity=self.identity,
            key_path=paths["key"],
            cert_path=paths["cert"],
            cacert_path=paths["cacert"],
            capath=options.capath,
            cipher=options.cipher,
            managed_files=tuple(managed),
            cert_fingerprint=fingerprint,
        )
        logger.debug(
            "TLS bundle resolved",
            identity=self.identity,
            managed=[f.artifact for f in managed],
        )
        return bundle

    def _validate_inline(self, inline: dict[str, str]) -> Optional[str]:
        """Parse inline PEM material. Returns the cert sha256 fingerprint if the cert is inline."""
        cert = None
        key = None
        try:
            if "cert" in inline:
                cert = x509.load_pem_x509_certificate(inline["cert"].encode())
            if "cacert" in inline:
                if not x509.load_pem_x509_certificates(inline["cacert"].encode()):
                    raise ValueError("no certificate found")
            if "key" in inline:
                key = serialization.load_pem_private_key(inline["key"].encode(), password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            # The parser message may quote input; only the type is reported
            raise ConfigurationError(
                f"Inline TLS material could not be parsed ({type(e).__name__})",
                code=IdoErrorCode.TLS_MATERIAL_INVALID,
                step=_STEP,
            ) from None

        if cert is not None and key is not None:
            if _public_key_der(key.public_key()) != _public_key_der(cert.public_key()):
                raise ConfigurationError(
                    "Inline TLS key does not match the inline certificate",
                    code=IdoErrorCode.TLS_MATERIAL_INVALID,
                    step=_STEP,
                )

        if cert is None:
            return None
        return hashlib.sha256(cert.public_bytes(serialization.Encoding.DER)).hexdigest()

    def declare(self, catalog: Catalog, bundle: TLSBundle, notify: bool) -> TLSClientResource:
        """Add managed credential files and the credential registration to the catalog."""
        client = TLSClientResource(bundle=bundle, notify_reload=notify)
        files = [
            catalog.add(
                FileResource(
                    path=managed.path,
                    content=managed.content,
                    mode=managed.mode,
                    owner=self.base.user,
                    group=self.base.group,
                    sensitive=managed.sensitive,
                    notify_reload=notify,
                )
            )
            for managed in bundle.managed_files
        ]
        catalog.add(client)
        for resource in files:
            catalog.order(resource, client)
        return client
