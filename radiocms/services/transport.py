"""File-transfer upload of published audio to the broadcast server.

FTP and FTPS (explicit or implicit TLS) go through :mod:`ftplib`, SFTP
through paramiko. Both run in the threadpool because the underlying clients
are blocking; every socket uses the configured upload timeout so a stalled
server surfaces as a :class:`TransportError` instead of hanging the request.
"""

from __future__ import annotations

import errno
import ftplib
import io
import logging
import mimetypes
import posixpath
import socket
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote

import paramiko
from fastapi.concurrency import run_in_threadpool

from radiocms.config.settings import settings
from radiocms.views.broadcast import FtpConfig

logger = logging.getLogger(__name__)

REDACTED = "***"
DEFAULT_CONTENT_TYPE = "audio/mpeg"
_DEFAULT_PORTS = {"ftp": 21, "sftp": 22}

# paramiko turns SFTP status replies into IOError errnos; map them back.
_SFTP_STATUS_BY_ERRNO = {
    errno.ENOENT: 2,  # SSH_FX_NO_SUCH_FILE
    errno.EACCES: 3,  # SSH_FX_PERMISSION_DENIED
}


class TransportError(RuntimeError):
    """Raised when the upload to the broadcast server fails.

    Protocol replies carry ``status_code``/``status_text``; network failures
    (DNS, refused connection, timeout) only carry ``cause``.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        status_text: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.status_text = status_text
        self.cause = cause

    @property
    def is_network_failure(self) -> bool:
        return self.status_text is None


@dataclass(frozen=True, repr=False)
class TransferTarget:
    """Fully resolved upload destination, credential included."""

    scheme: str
    host: str
    port: int
    username: str
    remote_folder: str
    remote_path: str
    encryption: str
    tls_mode: str = "explicit"
    content_type: str = DEFAULT_CONTENT_TYPE
    passive: bool = True
    credential: str = field(default="", compare=False)

    @property
    def url(self) -> str:
        return self._render(self.credential)

    @property
    def redacted_url(self) -> str:
        """Connection URL safe to hand to loggers."""

        return redact(self._render(REDACTED), self.credential)

    def diagnostics(self) -> dict[str, Any]:
        """Non-secret connection parameters for logs and audit entries."""

        return {
            "scheme": self.scheme,
            "ftp_host": self.host,
            "ftp_port": self.port,
            "ftp_user": self.username,
            "encryption": self.encryption,
            "tls_mode": self.tls_mode if self.encryption == "ftps" else None,
            "remote_path": self.remote_path,
            "content_type": self.content_type,
            "target": self.redacted_url,
        }

    def _render(self, password: str) -> str:
        user = quote(self.username, safe="")
        secret = quote(password, safe="*")
        return f"{self.scheme}://{user}:{secret}@{self.host}:{self.port}/{self.remote_path}"

    def __repr__(self) -> str:
        return f"TransferTarget({self.redacted_url})"

    __str__ = __repr__


def redact(text: str, credential: str) -> str:
    """Replace every literal or URL-quoted occurrence of ``credential``."""

    if not credential:
        return text
    for variant in {credential, quote(credential, safe="")}:
        text = text.replace(variant, REDACTED)
    return text


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    if content_type and content_type.startswith("audio/"):
        return content_type
    return DEFAULT_CONTENT_TYPE


def build_transfer_target(ftp_config: FtpConfig, credential: str, filename: str) -> TransferTarget:
    """Resolve scheme, port and remote path for an upload."""

    scheme = "sftp" if ftp_config.encryption == "sftp" else "ftp"
    port = ftp_config.port or _DEFAULT_PORTS[scheme]
    # Folder names are used verbatim; callers configure clean values.
    remote_path = f"{ftp_config.remote_folder}/{filename}"
    return TransferTarget(
        scheme=scheme,
        host=ftp_config.host,
        port=port,
        username=ftp_config.username,
        remote_folder=ftp_config.remote_folder,
        remote_path=remote_path,
        encryption=ftp_config.encryption,
        tls_mode=ftp_config.tls_mode,
        content_type=guess_content_type(filename),
        passive=ftp_config.passive_mode,
        credential=credential,
    )


def _parse_reply_code(reply: str) -> Optional[int]:
    code = reply.strip()[:3]
    return int(code) if code.isdigit() else None


class ImplicitFTP_TLS(ftplib.FTP_TLS):
    """FTPS client for servers that expect a TLS handshake right after TCP connect.

    :class:`ftplib.FTP_TLS` only speaks explicit TLS (``AUTH TLS`` on a plain
    control connection). Here the control socket is wrapped before the welcome
    line is read, so ``login`` sees a TLS socket and skips ``AUTH``.
    """

    def connect(self, host="", port=0, timeout=-999, source_address=None):
        if host:
            self.host = host
        if port > 0:
            self.port = port
        if timeout != -999:
            self.timeout = timeout
        if source_address is not None:
            self.source_address = source_address

        raw = socket.create_connection(
            (self.host, self.port), self.timeout, source_address=self.source_address
        )
        try:
            self.sock = self.context.wrap_socket(raw, server_hostname=self.host)
        except OSError:
            raw.close()
            raise
        self.af = self.sock.family
        self.file = self.sock.makefile("r", encoding=self.encoding)
        self.welcome = self.getresp()
        return self.welcome


class TransportClient:
    """Upload a byte buffer to the target described by a :class:`TransferTarget`."""

    def __init__(self, *, timeout: float = settings.publish.upload_timeout_seconds) -> None:
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    async def upload(self, data: bytes, target: TransferTarget) -> str:
        """Write ``data`` to ``target.remote_path`` and return that path."""

        logger.info(
            "Uploading %d bytes (%s) to %s",
            len(data),
            target.content_type,
            target.redacted_url,
        )
        await run_in_threadpool(self._upload_sync, data, target)
        logger.info("Upload finished: %s", target.remote_path)
        return target.remote_path

    def _upload_sync(self, data: bytes, target: TransferTarget) -> None:
        if target.scheme == "sftp":
            self._upload_sftp(data, target)
        else:
            self._upload_ftp(data, target)

    # FTP / FTPS

    def _upload_ftp(self, data: bytes, target: TransferTarget) -> None:
        use_tls = target.encryption == "ftps"
        client = self._ftp_client(target)
        try:
            client.connect(target.host, target.port)
            client.login(target.username, target.credential)
            if use_tls:
                client.prot_p()
            client.set_pasv(target.passive)
            self._ensure_ftp_folder(client, target.remote_folder)
            client.storbinary(f"STOR {target.remote_path}", io.BytesIO(data))
        except ftplib.Error as exc:
            reply = redact(str(exc), target.credential)
            raise TransportError(
                f"FTP upload failed: {reply}",
                status_code=_parse_reply_code(reply),
                status_text=reply,
                cause=exc,
            ) from exc
        except (OSError, EOFError) as exc:
            raise TransportError(
                f"FTP connection to {target.host}:{target.port} failed: "
                f"{redact(str(exc) or type(exc).__name__, target.credential)}",
                cause=exc,
            ) from exc
        finally:
            self._close_ftp(client)

    def _ftp_client(self, target: TransferTarget) -> ftplib.FTP:
        if target.encryption != "ftps":
            return ftplib.FTP(timeout=self._timeout)
        if target.tls_mode == "implicit":
            return ImplicitFTP_TLS(timeout=self._timeout)
        return ftplib.FTP_TLS(timeout=self._timeout)

    @staticmethod
    def _ensure_ftp_folder(client: ftplib.FTP, folder: str) -> None:
        """Create the remote folder chain, tolerating existing directories."""

        if not folder or folder in (".", "/"):
            return
        current = "/" if folder.startswith("/") else ""
        for part in (segment for segment in folder.split("/") if segment):
            current = posixpath.join(current, part) if current else part
            try:
                client.mkd(current)
            except ftplib.Error as exc:
                logger.warning("Could not create remote folder %s: %s", current, exc)

    @staticmethod
    def _close_ftp(client: ftplib.FTP) -> None:
        if client.sock is None:
            return
        try:
            client.quit()
        except (ftplib.Error, OSError, EOFError):
            client.close()

    # SFTP

    def _upload_sftp(self, data: bytes, target: TransferTarget) -> None:
        ssh = paramiko.SSHClient()
        ssh.set_missing_host_key_policy(paramiko.WarningPolicy())
        connected = False
        try:
            ssh.connect(
                target.host,
                port=target.port,
                username=target.username,
                password=target.credential,
                timeout=self._timeout,
                banner_timeout=self._timeout,
                auth_timeout=self._timeout,
                allow_agent=False,
                look_for_keys=False,
            )
            connected = True
            sftp = ssh.open_sftp()
            try:
                sftp.get_channel().settimeout(self._timeout)
                self._ensure_sftp_folder(sftp, target.remote_folder)
                sftp.putfo(io.BytesIO(data), target.remote_path, file_size=len(data))
            finally:
                sftp.close()
        except paramiko.SSHException as exc:
            reply = redact(str(exc) or type(exc).__name__, target.credential)
            raise TransportError(
                f"SFTP upload failed: {reply}",
                status_text=reply,
                cause=exc,
            ) from exc
        except OSError as exc:
            message = redact(str(exc) or type(exc).__name__, target.credential)
            if connected and exc.errno in _SFTP_STATUS_BY_ERRNO:
                raise TransportError(
                    f"SFTP upload failed: {message}",
                    status_code=_SFTP_STATUS_BY_ERRNO[exc.errno],
                    status_text=message,
                    cause=exc,
                ) from exc
            raise TransportError(
                f"SFTP connection to {target.host}:{target.port} failed: {message}",
                cause=exc,
            ) from exc
        finally:
            ssh.close()

    @staticmethod
    def _ensure_sftp_folder(sftp: paramiko.SFTPClient, folder: str) -> None:
        if not folder or folder in (".", "/"):
            return
        current = "/" if folder.startswith("/") else ""
        for part in (segment for segment in folder.split("/") if segment):
            current = posixpath.join(current, part) if current else part
            try:
                sftp.stat(current)
            except IOError:
                try:
                    sftp.mkdir(current)
                except IOError as exc:
                    logger.warning("Could not create remote folder %s: %s", current, exc)


__all__ = [
    "REDACTED",
    "ImplicitFTP_TLS",
    "TransferTarget",
    "TransportClient",
    "TransportError",
    "build_transfer_target",
    "guess_content_type",
    "redact",
]
