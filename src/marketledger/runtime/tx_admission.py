from __future__ import annotations

from typing import Any, Dict

from marketledger.ledger.constants import UINT256_MAX
from marketledger.runtime.supported_txs import VALUE_BEARING_TX_TYPES, is_supported
from marketledger.runtime.tx_admission_types import TxEnvelope, TxVerdict
from marketledger.runtime.tx_schema import validate_payload

Json = Dict[str, Any]


def admit_tx(tx: Any) -> TxVerdict:
    """Shape-check a tx envelope before it reaches apply.

    Never raises for bad input; the verdict carries the rejection.
    """
    try:
        env = TxEnvelope.from_json(tx)
    except (TypeError, ValueError) as e:
        return TxVerdict.reject("invalid_tx", "malformed_envelope", {"error": str(e)})

    t = env.tx_type
    if not t:
        return TxVerdict.reject("invalid_tx", "missing_tx_type", None)
    if not is_supported(t):
        return TxVerdict.reject("unsupported_tx", "tx_type_not_supported", {"tx_type": t})

    if not env.signer:
        return TxVerdict.reject("invalid_tx", "missing_signer", {"tx_type": t})
    if env.system:
        return TxVerdict.reject("forbidden", "system_tx_not_admissible", {"tx_type": t})

    if env.value < 0 or env.value > UINT256_MAX:
        return TxVerdict.reject("invalid_tx", "value_out_of_range", {"tx_type": t, "value": env.value})
    if env.value and t not in VALUE_BEARING_TX_TYPES:
        return TxVerdict.reject("invalid_tx", "value_not_accepted", {"tx_type": t, "value": env.value})

    ok, code, reason, details = validate_payload(tx_type=t, payload=env.payload)
    if not ok:
        return TxVerdict.reject(code, reason, details)

    return TxVerdict.admit()
