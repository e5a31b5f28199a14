import logging
from typing import Dict, List

import backoff
import requests

from bridgescope.config import settings
from bridgescope.utils.errors import IndexerError
from bridgescope.utils.types import EventKind

log = logging.getLogger(__name__)

_TRANSFER_FIELDS = """
        id
        localToken
        remoteToken
        to
        amount
        blockNumber
        blockTimestamp
        transactionHash
"""

COLLECTIONS = {
    EventKind.INITIATED: "transferInitializeds",
    EventKind.FINALIZED: "transferFinalizeds",
}

PAGE_QUERY = """
query Page($fromBlock: BigInt!, $first: Int!) {{
  {collection}(
    first: $first
    orderBy: blockNumber
    orderDirection: asc
    where: {{ blockNumber_gte: $fromBlock }}
  ) {{{fields}  }}
}}
"""

RECENT_QUERY = """
query Recent($since: BigInt!, $first: Int!) {{
  {collection}(
    first: $first
    orderBy: blockTimestamp
    orderDirection: desc
    where: {{ blockTimestamp_gte: $since }}
  ) {{{fields}  }}
}}
"""


class SubgraphClient:
    """GraphQL reader for the bridge subgraph's transfer collections."""

    def __init__(self, url: str, timeout: int = settings.SUBGRAPH_TIMEOUT, session: requests.Session = None):
        if not url:
            raise ValueError("subgraph URL is required")
        self.url = url
        self.timeout = timeout
        self.http = session or requests.Session()

    @backoff.on_exception(backoff.expo, requests.RequestException, max_tries=3)
    def query(self, query: str, variables: Dict) -> Dict:
        resp = self.http.post(self.url, json={"query": query, "variables": variables}, timeout=self.timeout)
        resp.raise_for_status()
        body = resp.json()
        if body.get("errors"):
            raise IndexerError(f"subgraph errors: {body['errors']}")
        if "data" not in body or body["data"] is None:
            raise IndexerError("subgraph response has no data")
        return body["data"]

    def fetch_page(self, kind: EventKind, from_block: int, first: int) -> List[Dict]:
        """Up to ``first`` events of ``kind`` with blockNumber >= ``from_block``, ascending."""
        collection = COLLECTIONS[kind]
        data = self.query(
            PAGE_QUERY.format(collection=collection, fields=_TRANSFER_FIELDS),
            {"fromBlock": str(from_block), "first": first},
        )
        rows = data.get(collection) or []
        log.debug(f"[subgraph] {collection} from block {from_block}: {len(rows)} rows")
        return rows

    def fetch_recent(self, kind: EventKind, since_ts: int, first: int) -> List[Dict]:
        """Newest-first events of ``kind`` with blockTimestamp >= ``since_ts``."""
        collection = COLLECTIONS[kind]
        data = self.query(
            RECENT_QUERY.format(collection=collection, fields=_TRANSFER_FIELDS),
            {"since": str(since_ts), "first": first},
        )
        return data.get(collection) or []
