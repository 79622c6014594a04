"""Gateway transport: the connection every pipeline stage shares.

The wire format is JSON over HTTP(S). Bytes fields are base64 encoded.
Each stage is one ``POST``:

* ``/evaluate``: ``{"proposal": ...}`` returns ``{"result": b64}``
* ``/endorse``: ``{"proposal": ...}`` returns
  ``{"result": b64, "envelope": b64, "endorsements": [...]}``
* ``/submit``: ``{"transactionId": ..., "envelope": b64}`` returns ``{}``
* ``/commit-status``: ``{"transactionId": ...}`` returns
  ``{"code": int, "blockNumber": int}``

Failures return a non-200 status with
``{"error": {"type": ..., "message": ...}}``. Contract error types
(``NotFound``, ``AlreadyExists``, ``Validation``) are raised as the
matching :class:`~pyvledger.exceptions.ContractError` subclass.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import ssl
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyvledger._redact import redact_for_log
from pyvledger.config import GatewayConfig
from pyvledger.exceptions import (
    EndorsementError,
    EvaluationError,
    GatewayError,
    IdentityError,
    OrderingError,
    contract_error_from_kind,
)
from pyvledger.models.transaction import CommitStatus, EndorsedTransaction, Proposal

_logger = logging.getLogger(__name__)

_CONTRACT_KINDS = frozenset({"ContractError", "NotFound", "AlreadyExists", "Validation"})


class Transport(Protocol):
    """Structural transport interface used by the gateway.

    Both :class:`HttpGatewayTransport` and the in-process
    :class:`pyvledger.local.LocalNetwork` satisfy it, and tests can pass
    their own doubles. Deadlines are enforced by the caller.
    """

    async def evaluate(self, proposal: Proposal) -> bytes:
        ...

    async def endorse(self, proposal: Proposal) -> EndorsedTransaction:
        ...

    async def submit(self, endorsed: EndorsedTransaction) -> None:
        ...

    async def commit_status(self, transaction_id: str) -> CommitStatus:
        ...

    async def close(self) -> None:
        ...


def _b64decode(value: Any, *, field: str) -> bytes:
    if value is None or value == "":
        return b""
    if not isinstance(value, str):
        raise GatewayError(f"Field {field!r} must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise GatewayError(f"Field {field!r} is not valid base64") from exc


class HttpGatewayTransport:
    """JSON-over-HTTP gateway transport sharing one ``aiohttp`` session."""

    def __init__(
        self,
        config: GatewayConfig,
        http_session: aiohttp.ClientSession,
        *,
        ssl_context: ssl.SSLContext | None = None,
        owns_session: bool = False,
    ) -> None:
        self._config = config
        self._http = http_session
        self._ssl = ssl_context
        self._owns_session = owns_session

    async def _post(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        error_cls: type[GatewayError],
        transaction_id: str = "",
    ) -> dict[str, Any]:
        url = f"{self._config.base_url}{endpoint}"
        body = json.dumps(payload, separators=(",", ":"))
        headers = {"content-type": "application/json; charset=UTF-8"}

        _logger.debug("POST %s %s", url, redact_for_log(payload))

        request_kwargs: dict[str, Any] = {"data": body, "headers": headers}
        if self._ssl is not None:
            request_kwargs["ssl"] = self._ssl
            if self._config.peer_host_alias:
                request_kwargs["server_hostname"] = self._config.peer_host_alias

        try:
            async with self._http.post(url, **request_kwargs) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise error_cls(
                f"Request to {endpoint} failed: {exc}",
                transaction_id=transaction_id,
            ) from exc

        try:
            body_json = json.loads(text) if text else {}
        except json.JSONDecodeError as exc:
            raise error_cls(
                f"Invalid JSON from {endpoint} (HTTP {status}): {text[:200]}",
                transaction_id=transaction_id,
                code=status,
            ) from exc

        if not isinstance(body_json, dict):
            raise error_cls(
                f"Unexpected response shape from {endpoint}",
                transaction_id=transaction_id,
                code=status,
            )

        if status != 200:
            error = body_json.get("error")
            kind = str(error.get("type", "")) if isinstance(error, dict) else ""
            message = str(error.get("message", "")) if isinstance(error, dict) else text[:200]
            if kind in _CONTRACT_KINDS:
                raise contract_error_from_kind(kind, message, transaction_id=transaction_id)
            raise error_cls(
                f"HTTP {status} from {endpoint}: {message}",
                transaction_id=transaction_id,
                code=status,
            )

        return body_json

    async def evaluate(self, proposal: Proposal) -> bytes:
        body = await self._post(
            "/evaluate",
            {"proposal": proposal.to_wire()},
            error_cls=EvaluationError,
            transaction_id=proposal.transaction_id,
        )
        return _b64decode(body.get("result"), field="result")

    async def endorse(self, proposal: Proposal) -> EndorsedTransaction:
        body = await self._post(
            "/endorse",
            {"proposal": proposal.to_wire()},
            error_cls=EndorsementError,
            transaction_id=proposal.transaction_id,
        )
        endorsements = body.get("endorsements")
        return EndorsedTransaction(
            proposal=proposal,
            result=_b64decode(body.get("result"), field="result"),
            envelope=_b64decode(body.get("envelope"), field="envelope"),
            endorsements=[str(e) for e in endorsements] if isinstance(endorsements, list) else [],
        )

    async def submit(self, endorsed: EndorsedTransaction) -> None:
        await self._post(
            "/submit",
            {
                "transactionId": endorsed.transaction_id,
                "envelope": base64.b64encode(endorsed.envelope).decode("ascii"),
            },
            error_cls=OrderingError,
            transaction_id=endorsed.transaction_id,
        )

    async def commit_status(self, transaction_id: str) -> CommitStatus:
        body = await self._post(
            "/commit-status",
            {"transactionId": transaction_id},
            error_cls=GatewayError,
            transaction_id=transaction_id,
        )
        code = body.get("code")
        if not isinstance(code, int) or isinstance(code, bool):
            raise GatewayError(
                f"Commit status for {transaction_id} carries no code",
                transaction_id=transaction_id,
            )
        block = body.get("blockNumber")
        return CommitStatus(
            transaction_id=transaction_id,
            code=code,
            block_number=block if isinstance(block, int) else None,
        )

    async def close(self) -> None:
        if self._owns_session and not self._http.closed:
            await self._http.close()


def _tls_context(config: GatewayConfig) -> ssl.SSLContext:
    path = config.resolved_tls_cert_path
    try:
        return ssl.create_default_context(cafile=str(path))
    except (OSError, ssl.SSLError) as exc:
        raise IdentityError(f"Cannot load TLS CA certificate {path}: {exc}") from exc


async def open_connection(
    config: GatewayConfig,
    *,
    session: aiohttp.ClientSession | None = None,
) -> HttpGatewayTransport:
    """Open the shared gateway connection described by *config*.

    A session passed by the caller is reused and left open on
    :meth:`HttpGatewayTransport.close`; otherwise one is created and owned.
    """
    ssl_context = await asyncio.to_thread(_tls_context, config) if config.use_tls else None
    owns_session = session is None
    http_session = session if session is not None else aiohttp.ClientSession()
    return HttpGatewayTransport(config, http_session, ssl_context=ssl_context, owns_session=owns_session)
