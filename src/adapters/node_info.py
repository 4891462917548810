"""Fetch the local node's version and HTTP bound addresses.

Reads the *bound* address list rather than the single publish address: the
token should offer several reachability options, and
`core.services.addresses` pares them down afterwards.

Expected shape::

    {"nodes": {"<node id>": {"version": "8.0.0",
                             "http": {"bound_address": ["127.0.0.1:9200", ...],
                                      "publish_address": "127.0.0.1:9200"}}}}
"""

from __future__ import annotations

import logging
from typing import Any

from adapters.http_client import endpoint_url
from core.domain.errors import ResponseParseError, UnexpectedResponseError
from core.domain.models import NodeInfo
from core.interfaces.http import HttpExecutor, HttpRequest

logger = logging.getLogger(__name__)

HTTP_INFO_PATH = "_nodes/_local/http"


def http_info_url(base_url: str) -> str:
    return endpoint_url(base_url, HTTP_INFO_PATH)


def _require(mapping: Any, key: str, *, path: str, url: str) -> Any:
    if not isinstance(mapping, dict) or key not in mapping:
        raise ResponseParseError(field=path, url=url)
    return mapping[key]


def parse_node_info(body: dict[str, Any], *, url: str) -> NodeInfo:
    nodes = _require(body, "nodes", path="nodes", url=url)
    if not isinstance(nodes, dict) or not nodes:
        raise ResponseParseError(field="nodes.<node>", url=url)
    node_id, node = next(iter(nodes.items()))

    version = _require(node, "version", path=f"nodes.{node_id}.version", url=url)
    http = _require(node, "http", path=f"nodes.{node_id}.http", url=url)
    bound = _require(http, "bound_address", path=f"nodes.{node_id}.http.bound_address", url=url)
    if not isinstance(version, str) or not version:
        raise ResponseParseError(field=f"nodes.{node_id}.version", url=url)
    if not isinstance(bound, list) or not bound or not all(isinstance(a, str) for a in bound):
        raise ResponseParseError(field=f"nodes.{node_id}.http.bound_address", url=url)

    publish = http.get("publish_address")
    return NodeInfo(
        version=version,
        bound_addresses=list(bound),
        publish_address=publish if isinstance(publish, str) else None,
    )


class NodeInfoFetcher:
    def __init__(self, http: HttpExecutor) -> None:
        self._http = http

    def fetch(self, base_url: str, username: str, password: str) -> NodeInfo:
        url = http_info_url(base_url)
        response = self._http.execute(
            HttpRequest(method="GET", url=url, username=username, password=password)
        )
        if response.status != 200:
            raise UnexpectedResponseError(method="GET", url=url, status=response.status)

        info = parse_node_info(response.body, url=url)
        logger.debug("Node %s reports %d bound HTTP address(es)", info.version, len(info.bound_addresses))
        return info
