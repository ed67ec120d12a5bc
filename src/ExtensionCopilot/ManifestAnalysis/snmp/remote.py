"""HTTP access to the online OID repository.

The repository answers ``GET <base-url>/<dotted-path>`` with an HTML page whose
last ``<code>`` block holds the ASN.1 text of the object, one clause per
``<br>``. Nothing here raises to callers: :meth:`OidRepositoryClient.fetch`
degrades every failure to a negative record.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, MutableMapping, Optional, Tuple

import httpx
from bs4 import BeautifulSoup

from ..errors import LookupFailure
from ..settings import LookupConfiguration
from .records import OidRecord, RecordSource

__all__ = [
    "build_http_client",
    "parse_oid_repository_html",
    "OidRepositoryClient",
]

LOGGER = logging.getLogger("ExtensionCopilot.ManifestAnalysis.snmp.remote")

_BREAK = "<br>"

# clauses that also populate a dedicated record field
_FIELD_NAMES = {"syntax": "syntax", "maxAccess": "max_access", "access": "max_access", "status": "status"}


def _request_hook(request: httpx.Request) -> None:
    meta: MutableMapping[str, object] = request.extensions.setdefault("extcopilot_meta", {})  # type: ignore[assignment]
    meta["start_time"] = time.perf_counter()


def _response_hook(response: httpx.Response) -> None:
    response.raise_for_status()

    meta: MutableMapping[str, object] = response.request.extensions.setdefault(  # type: ignore[assignment]
        "extcopilot_meta", {}
    )
    start = meta.get("start_time")
    elapsed = time.perf_counter() - start if isinstance(start, (int, float)) else None
    LOGGER.debug(
        "oid-repository-response",
        extra={
            "extra_fields": {
                "url": str(response.request.url),
                "status": response.status_code,
                "elapsed_sec": elapsed,
            }
        },
    )


def _timeout_for(config: LookupConfiguration) -> httpx.Timeout:
    return httpx.Timeout(
        connect=config.connect_timeout_sec,
        read=config.timeout_sec,
        write=config.timeout_sec,
        pool=config.connect_timeout_sec,
    )


def _limits_for(config: LookupConfiguration) -> httpx.Limits:
    return httpx.Limits(
        max_connections=config.max_connections,
        max_keepalive_connections=min(config.max_connections, config.max_concurrent_lookups),
        keepalive_expiry=30.0,
    )


def build_http_client(
    config: LookupConfiguration, *, transport: Optional[httpx.BaseTransport] = None
) -> httpx.Client:
    """Return an ``httpx.Client`` configured for the OID repository.

    Args:
        config: Lookup settings providing timeouts, limits, and user agent.
        transport: Optional transport override (``httpx.MockTransport`` in tests).

    Returns:
        A client whose response hook raises ``httpx.HTTPStatusError`` for
        non-success status codes.
    """

    return httpx.Client(
        transport=transport or httpx.HTTPTransport(retries=0),
        timeout=_timeout_for(config),
        limits=_limits_for(config),
        trust_env=True,
        follow_redirects=True,
        headers={"User-Agent": config.user_agent, "Accept": "text/html"},
        event_hooks={"request": [_request_hook], "response": [_response_hook]},
    )


def _kebab_to_camel(key: str) -> str:
    parts = [part for part in key.strip().lower().split("-") if part]
    if not parts:
        return ""
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


def _collapse(text: str) -> str:
    return " ".join(text.split())


def parse_oid_repository_html(payload: str, oid: str) -> OidRecord:
    """Extract an :class:`OidRecord` from an OID repository page.

    The text of the last ``<code>`` element is unquoted, flattened, and split
    at its ``<br>`` tags into ``KEY VALUE`` pairs. A pair whose
    value ends in ``-TYPE`` names the object; other keys are converted from
    kebab case to camel case. Everything after ``DESCRIPTION`` is prose: the
    part before the first ``INDEX`` is the description and the ``INDEX``
    clause runs up to the ``::=`` assignment. Prose that happens to contain
    ``INDEX`` is split there as well.

    Args:
        payload: Response body.
        oid: Dotted path that was requested.

    Returns:
        A record with ``source == "online"``.

    Raises:
        LookupFailure: If the page has no ``<code>`` block or names no object.

    Examples:
        >>> page = ("<code>sysDescr OBJECT-TYPE<br>SYNTAX DisplayString<br>"
        ...         "MAX-ACCESS read-only<br>STATUS current<br>"
        ...         'DESCRIPTION "A textual description" ::= { system 1 }</code>')
        >>> record = parse_oid_repository_html(page, "1.3.6.1.2.1.1.1")
        >>> (record.object_name, record.max_access, record.description)
        ('sysDescr', 'read-only', 'A textual description')
    """

    blocks = BeautifulSoup(payload, "html.parser").find_all("code")
    if not blocks:
        raise LookupFailure("response has no <code> block", oid=oid)
    block = blocks[-1]
    for br in block.find_all("br"):
        br.replace_with(_BREAK)
    dump = block.get_text()
    dump = dump.replace('"', "").replace("\r", "").replace("\n", " ")

    head, has_description, prose = dump.partition("DESCRIPTION")
    fields: Dict[str, Optional[str]] = {}
    attributes: List[Tuple[str, str]] = []
    for piece in head.split(_BREAK):
        piece = piece.strip()
        if not piece:
            continue
        key, _, value = piece.partition(" ")
        value = value.strip()
        if value.endswith("-TYPE"):
            fields["object_name"] = key
            fields["object_type"] = value
            continue
        name = _kebab_to_camel(key)
        if not name or not value:
            continue
        value = _collapse(value)
        attributes.append((name, value))
        attribute = _FIELD_NAMES.get(name)
        if attribute is not None:
            fields[attribute] = value

    if has_description:
        prose = prose.replace(_BREAK, " ")
        description, has_index, index_clause = prose.partition("INDEX")
        if has_index:
            fields["index"] = _collapse(index_clause.split("::=")[0]).strip("{} ") or None
        fields["description"] = _collapse(description.split("::=")[0]) or None

    if not fields.get("object_type"):
        raise LookupFailure("response names no object", oid=oid)
    return OidRecord(raw_key=oid, source=RecordSource.ONLINE, attributes=tuple(attributes), **fields)


class OidRepositoryClient:
    """Fetches OID records from the online repository; never raises."""

    def __init__(self, client: httpx.Client, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base_url

    def fetch(self, oid: str) -> OidRecord:
        """Return the online record of ``oid`` or a negative record on any failure."""

        url = f"{self._base_url}/{oid}"
        try:
            response = self._client.get(url)
            return parse_oid_repository_html(response.text, oid)
        except httpx.HTTPStatusError as exc:
            LOGGER.info(
                "OID repository returned an error status",
                extra={"oid": oid, "extra_fields": {"status": exc.response.status_code}},
            )
        except httpx.HTTPError as exc:
            LOGGER.warning(
                "OID repository request failed",
                extra={"oid": oid, "extra_fields": {"error": repr(exc)}},
            )
        except LookupFailure as exc:
            LOGGER.info("OID repository payload unusable", extra={"oid": oid, "extra_fields": {"error": str(exc)}})
        return OidRecord.empty(oid)

    def close(self) -> None:
        self._client.close()
