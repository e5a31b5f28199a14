from pydantic import ValidationError

from bridgescope.config.constants import DIRECTION_TABLE, STATUS_TABLE
from bridgescope.normalizer.schemas import IndexerTransfer
from bridgescope.normalizer.transfer import NormalizedTransfer, from_unix
from bridgescope.utils.address import canonical_address
from bridgescope.utils.errors import NormalizationError
from bridgescope.utils.types import Chain, EventKind

LOG_INDEX_HEX_LEN = 8  # graph-ts Bytes.concatI32 → 4 little-endian bytes


def extract_log_index(event_id: str, transaction_hash: str) -> int:
    """Recover the log index from a subgraph entity id.

    Ids are either ``<txHash><i32 little-endian hex>`` (concatI32) or
    ``<anything>-<logIndex>``. Nothing else is accepted; guessing a default
    would let two events collide on the same natural key.
    """
    ident = event_id.lower()
    tx = transaction_hash.lower()

    if ident.startswith(tx) and len(ident) == len(tx) + LOG_INDEX_HEX_LEN:
        try:
            return int.from_bytes(bytes.fromhex(ident[len(tx):]), "little", signed=True)
        except ValueError:
            pass

    if "-" in ident:
        tail = ident.rsplit("-", 1)[1]
        if tail.isdigit():
            return int(tail)

    raise NormalizationError(f"cannot extract log index from id {event_id!r}")


def normalize_indexer_event(event, chain: Chain, kind: EventKind) -> NormalizedTransfer:
    """Subgraph TransferInitialized / TransferFinalized → canonical transfer.

    ``event`` may be the raw dict from the GraphQL response or a parsed
    ``IndexerTransfer``.
    """
    if not isinstance(event, IndexerTransfer):
        try:
            event = IndexerTransfer.model_validate(event)
        except ValidationError as e:
            raise NormalizationError(f"malformed {chain.value} {kind.value} event: {e}") from e

    return NormalizedTransfer(
        transaction_hash=canonical_address(event.transaction_hash),
        log_index=extract_log_index(event.id, event.transaction_hash),
        chain=chain,
        kind=kind,
        direction=DIRECTION_TABLE[(chain, kind)],
        status=STATUS_TABLE[kind],
        block_number=event.block_number,
        block_timestamp=from_unix(event.block_timestamp),
        sender=None,
        recipient=canonical_address(event.to),
        token_address=canonical_address(event.local_token),
        remote_token=event.remote_token,
        raw_amount=event.amount,
    )
