"""EIP-712 typed data for user decryption requests."""

from __future__ import annotations

from typing import Any, Sequence

USER_DECRYPT_PRIMARY_TYPE = "UserDecryptRequestVerification"

USER_DECRYPT_TYPES: dict[str, list[dict[str, str]]] = {
    USER_DECRYPT_PRIMARY_TYPE: [
        {"name": "publicKey", "type": "string"},
        {"name": "contractAddresses", "type": "string[]"},
        {"name": "startTimestamp", "type": "uint256"},
        {"name": "durationDays", "type": "uint256"},
    ],
}


def build_user_decrypt_eip712(
    *,
    chain_id: int,
    verifying_contract: str,
    public_key: str,
    contract_addresses: Sequence[str],
    start_timestamp: int,
    duration_days: int,
    name: str = "Decryption",
    version: str = "1",
) -> dict[str, Any]:
    """Build ``{"domain", "types", "message", "primaryType"}`` for signing."""
    return {
        "domain": {
            "chainId": chain_id,
            "name": name,
            "version": version,
            "verifyingContract": verifying_contract,
        },
        "types": {k: [dict(f) for f in v] for k, v in USER_DECRYPT_TYPES.items()},
        "primaryType": USER_DECRYPT_PRIMARY_TYPE,
        "message": {
            "publicKey": public_key,
            "contractAddresses": list(contract_addresses),
            "startTimestamp": start_timestamp,
            "durationDays": duration_days,
        },
    }
