"""
Transfer → dApp attribution.

Signals are checked by an ordered list of matchers and the first hit wins;
matchers after it are never evaluated. Reordering ``MATCHERS`` changes
attribution results for every stored transfer, so treat it as a breaking
change.
"""
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, Tuple

from bridgescope.attribution.registry import DappRegistry
from bridgescope.utils.types import AttributionMethod


@dataclass(frozen=True)
class AttributionSignals:
    target_contract: Optional[str] = None
    relayer: Optional[str] = None
    preceding_tx_to: Optional[str] = None
    wallet_label: Optional[str] = None


class AttributionResult(NamedTuple):
    dapp_id: Optional[str]
    confidence: int
    method: AttributionMethod
    signal_value: Optional[str] = None


class Matcher(NamedTuple):
    method: AttributionMethod
    confidence: int
    match: Callable[[AttributionSignals, DappRegistry], Optional[Tuple[str, str]]]


def _target_contract(signals, registry):
    dapp = registry.by_contract(signals.target_contract)
    return (dapp.id, signals.target_contract) if dapp else None


def _relayer(signals, registry):
    dapp_id = registry.by_relayer(signals.relayer)
    return (dapp_id, signals.relayer) if dapp_id else None


def _preceding_tx(signals, registry):
    dapp = registry.by_contract(signals.preceding_tx_to)
    return (dapp.id, signals.preceding_tx_to) if dapp else None


def _wallet_label(signals, registry):
    if not signals.wallet_label:
        return None
    label = signals.wallet_label.lower()
    for marker, dapp_id in registry.label_markers.items():
        if marker in label:
            return dapp_id, marker
    return None


MATCHERS = (
    Matcher(AttributionMethod.TARGET_CONTRACT, 95, _target_contract),
    Matcher(AttributionMethod.RELAYER, 85, _relayer),
    Matcher(AttributionMethod.PRECEDING_TX, 65, _preceding_tx),
    Matcher(AttributionMethod.WALLET_LABEL, 50, _wallet_label),
)

UNATTRIBUTED = AttributionResult(None, 0, AttributionMethod.UNKNOWN)


def attribute_transfer(signals: AttributionSignals, registry: DappRegistry) -> AttributionResult:
    for matcher in MATCHERS:
        hit = matcher.match(signals, registry)
        if hit is not None:
            dapp_id, value = hit
            return AttributionResult(dapp_id, matcher.confidence, matcher.method, value)
    return UNATTRIBUTED
