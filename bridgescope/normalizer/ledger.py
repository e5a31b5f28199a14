import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from bridgescope.config.constants import BRIDGE_CONTRACTS, DEFAULT_SPL_DECIMALS, DIRECTION_TABLE, STATUS_TABLE
from bridgescope.normalizer.schemas import LedgerTransaction, RawAmount
from bridgescope.normalizer.transfer import NormalizedTransfer, from_unix
from bridgescope.utils.errors import NormalizationError
from bridgescope.utils.types import Chain, EventKind

log = logging.getLogger(__name__)

BRIDGE_PROGRAM = BRIDGE_CONTRACTS["SOLANA"]["BRIDGE_PROGRAM"]
RELAYER_PROGRAM = BRIDGE_CONTRACTS["SOLANA"]["RELAYER_PROGRAM"]


def _raw_amount(value: Optional[RawAmount], signature: str) -> Optional[str]:
    """``tokenAmount`` is a raw integer amount; anything else leaves the amount unknown."""
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise NormalizationError(f"unparsable token amount {value!r}")
    if not amount.is_finite():
        raise NormalizationError(f"unparsable token amount {value!r}")
    if amount != amount.to_integral_value():
        log.warning(f"[ledger] {signature}: token amount {value!r} is not a raw integer, amount left unknown")
        return None
    return str(int(amount))


def _balance_extremes(tx: LedgerTransaction) -> Tuple[Optional[str], Optional[str]]:
    """Largest native outflow → sender, largest inflow → recipient."""
    outflows = [a for a in tx.account_data if a.native_balance_change < 0]
    inflows = [a for a in tx.account_data if a.native_balance_change > 0]
    sender = min(outflows, key=lambda a: a.native_balance_change).account if outflows else None
    recipient = max(inflows, key=lambda a: a.native_balance_change).account if inflows else None
    return sender, recipient


def normalize_ledger_transaction(
    tx: LedgerTransaction,
    bridge_program: str = BRIDGE_PROGRAM,
    relayer_program: str = RELAYER_PROGRAM,
) -> Optional[NormalizedTransfer]:
    """Canonical transfer for a ledger-chain transaction, or None if it never touched the bridge.

    The natural-key index is the position of the first bridge/relayer
    instruction, so a replayed webhook maps onto the same row.
    """
    programs = (bridge_program, relayer_program)
    hit = next(
        ((i, ix) for i, ix in enumerate(tx.instructions) if ix.program_id in programs),
        None,
    )
    if hit is None:
        log.debug(f"[ledger] {tx.signature}: no bridge instruction, skipping")
        return None
    instruction_index, instruction = hit

    relayer = next(
        (ix.accounts[0] for ix in tx.instructions
         if ix.program_id == relayer_program and ix.accounts),
        None,
    )

    sender, recipient = _balance_extremes(tx)
    mint = raw_amount = decimals = None

    token_event = tx.first_token_transfer()
    if token_event is not None:
        decimals = token_event.decimals if token_event.decimals is not None else DEFAULT_SPL_DECIMALS
        mint = token_event.mint or None
        raw_amount = _raw_amount(token_event.token_amount, tx.signature)
        sender = token_event.from_user_account or sender
        recipient = token_event.to_user_account or recipient

    kind = EventKind.INITIATED
    return NormalizedTransfer(
        transaction_hash=tx.signature,
        log_index=instruction_index,
        chain=Chain.SOLANA,
        kind=kind,
        direction=DIRECTION_TABLE[(Chain.SOLANA, kind)],
        status=STATUS_TABLE[kind],
        block_number=tx.slot,
        block_timestamp=from_unix(tx.timestamp),
        sender=sender,
        recipient=recipient,
        token_address=mint,
        raw_amount=raw_amount,
        decimals=decimals,
        relayer=relayer,
        program_id=instruction.program_id,
    )
