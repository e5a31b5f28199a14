import logging
import threading
from typing import Dict

import backoff
from web3 import HTTPProvider, Web3

from bridgescope.config import settings

log = logging.getLogger(__name__)

_clients: Dict[str, Web3] = {}
_clients_lock = threading.Lock()


@backoff.on_exception(backoff.expo, ConnectionError, max_tries=3, jitter=None)
def _connect(rpc_url: str) -> Web3:
    w3 = Web3(HTTPProvider(rpc_url, request_kwargs={"timeout": settings.RPC_TIMEOUT}))
    if not w3.is_connected():
        raise ConnectionError(f"Base RPC unreachable: {rpc_url}")
    log.info(f"Base RPC connected ✅ (chain id {w3.eth.chain_id})")
    return w3


def get_web3_client(rpc_url: str = None) -> Web3:
    """Shared Web3 handle for the Base RPC, one per URL per process."""
    url = rpc_url or settings.BASE_RPC_URL
    with _clients_lock:
        if url not in _clients:
            _clients[url] = _connect(url)
        return _clients[url]
