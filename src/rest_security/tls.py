"""TLS key and certificate material for the HTTP server.

The core never parses PEM itself; it reads both files into memory and hands
them to the HTTP server. Contents and paths are kept in ``bytearray`` buffers
and overwritten with zero bytes on unload, since paths may come from
configuration files that also hold secrets.
"""

from __future__ import annotations

import os
import ssl
import tempfile
from pathlib import Path
from types import TracebackType

import structlog

from .errors import ConfigError

log = structlog.get_logger(__name__)


def _zeroize(buffer: bytearray) -> None:
    for i in range(len(buffer)):
        buffer[i] = 0


class TLSMaterial:
    """Private key and certificate loaded from PEM files.

    Use as a context manager to guarantee the material is zeroized on every
    exit path:

    Example:
        ```python
        with TLSMaterial.load("server.key", "server.pem") as material:
            app.run(ssl_context=material.ssl_context())
        ```
    """

    def __init__(
        self,
        private_key_path: bytearray,
        certificate_path: bytearray,
        private_key: bytearray,
        certificate: bytearray,
    ) -> None:
        self._private_key_path = private_key_path
        self._certificate_path = certificate_path
        self._private_key = private_key
        self._certificate = certificate
        self._loaded = True

    @classmethod
    def load(
        cls, private_key_path: str | os.PathLike[str] | None, certificate_path: str | os.PathLike[str] | None
    ) -> TLSMaterial:
        """Read both PEM files fully into memory.

        Raises:
            ConfigError: If either path is missing or cannot be read.
        """
        if not private_key_path or not certificate_path:
            log.error("not enough security files provided")
            raise ConfigError("Both a private key and a certificate file are required")

        try:
            private_key = bytearray(Path(private_key_path).read_bytes())
            certificate = bytearray(Path(certificate_path).read_bytes())
        except OSError as e:
            log.error("failed to read security files", reason=str(e))
            raise ConfigError(f"Failed to read security files: {e}") from e

        material = cls(
            bytearray(os.fsencode(private_key_path)),
            bytearray(os.fsencode(certificate_path)),
            private_key,
            certificate,
        )
        log.debug("successfully loaded security configuration")
        return material

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def private_key(self) -> bytes:
        return bytes(self._private_key)

    @property
    def certificate(self) -> bytes:
        return bytes(self._certificate)

    @property
    def private_key_path(self) -> str:
        return os.fsdecode(bytes(self._private_key_path))

    @property
    def certificate_path(self) -> str:
        return os.fsdecode(bytes(self._certificate_path))

    def buffers(self) -> tuple[bytearray, ...]:
        """The live buffers that unload() zeroizes: key path, cert path, key, cert."""
        return (
            self._private_key_path,
            self._certificate_path,
            self._private_key,
            self._certificate,
        )

    def ssl_context(self) -> ssl.SSLContext:
        """Build a server-side SSLContext from the in-memory material.

        ``load_cert_chain`` only reads from files, so the PEM bytes are
        written to a private temporary directory that is removed before
        returning.

        Raises:
            ConfigError: If the material has been unloaded or is not valid PEM.
        """
        if not self._loaded:
            raise ConfigError("TLS material has already been unloaded")

        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        with tempfile.TemporaryDirectory() as tmp:
            cert_file = Path(tmp, "certificate.pem")
            key_file = Path(tmp, "private_key.pem")
            cert_file.write_bytes(self._certificate)
            key_file.touch(mode=0o600)
            key_file.write_bytes(self._private_key)
            try:
                context.load_cert_chain(certfile=cert_file, keyfile=key_file)
            except ssl.SSLError as e:
                raise ConfigError(f"Invalid TLS material: {e}") from e
            finally:
                key_file.write_bytes(b"\0" * len(self._private_key))
        return context

    def unload(self) -> None:
        """Zeroize contents and paths. Safe to call more than once."""
        for buffer in self.buffers():
            _zeroize(buffer)
        if self._loaded:
            log.debug("successfully unloaded security")
        self._loaded = False

    def __enter__(self) -> TLSMaterial:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unload()
