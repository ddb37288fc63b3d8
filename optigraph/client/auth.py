"""Authorization headers for the Optimizely Graph API.

Three modes, selected by :class:`optigraph.formats.settings.AuthMode`:

- ``None``: no header, only works against endpoints allowing anonymous reads.
- ``SingleKey``: ``Authorization: epi-single <key>``.
- ``Hmac``: Optimizely's ``epi-hmac`` request signature. The signed message
  is ``appKey + method + target + timestamp + nonce + base64(md5(body))``,
  signed with HMAC-SHA256 keyed by the base64-decoded secret. ``target`` is
  the path and query of the endpoint and ``timestamp`` is Unix epoch
  milliseconds.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from urllib.parse import urlsplit
import uuid

from optigraph.errors import ConfigError
from optigraph.formats.settings import AuthMode, GraphSettings


def auth_headers(
    settings: GraphSettings,
    body: bytes,
    method: str = "POST",
    url: str | None = None,
    *,
    timestamp_ms: int | None = None,
    nonce: str | None = None,
) -> dict[str, str]:
    """Return the headers that authenticate one request under *settings*.

    Raises :class:`ConfigError` when the selected mode lacks credentials.
    """
    missing = settings.missing_credentials()
    if missing:
        raise ConfigError(
            f"Auth mode {settings.auth_mode.value} needs: {', '.join(missing)}",
            {"missing": missing},
        )

    if settings.auth_mode is AuthMode.SINGLE_KEY:
        return {"Authorization": f"epi-single {settings.single_key}"}
    if settings.auth_mode is AuthMode.HMAC:
        return {
            "Authorization": hmac_authorization(
                settings.app_key or "",
                settings.secret or "",
                body,
                method=method,
                url=url or settings.endpoint,
                timestamp_ms=timestamp_ms,
                nonce=nonce,
            )
        }
    return {}


def hmac_authorization(
    app_key: str,
    secret: str,
    body: bytes,
    *,
    method: str,
    url: str,
    timestamp_ms: int | None = None,
    nonce: str | None = None,
) -> str:
    """Compute the ``epi-hmac`` Authorization header value."""
    try:
        key = base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigError("HMAC secret must be base64 encoded") from e

    timestamp = str(timestamp_ms if timestamp_ms is not None else int(time.time() * 1000))
    nonce = nonce or uuid.uuid4().hex
    body_hash = base64.b64encode(hashlib.md5(body).digest()).decode("ascii")

    message = f"{app_key}{method.upper()}{request_target(url)}{timestamp}{nonce}{body_hash}"
    digest = hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
    signature = base64.b64encode(digest).decode("ascii")
    return f"epi-hmac {app_key}:{timestamp}:{nonce}:{signature}"


def request_target(url: str) -> str:
    """Path plus query string of *url*, as signed by the HMAC scheme.

    >>> request_target("https://cg.optimizely.com/content/v2?cache=false")
    '/content/v2?cache=false'
    """
    parts = urlsplit(url)
    target = parts.path or "/"
    if parts.query:
        target += "?" + parts.query
    return target
