"""Decrypt a proposal's encrypted tally for the signing user."""

from __future__ import annotations

import logging

from fhevm_kit.core.types import FhevmInstance, GenericStringStorage, Signer
from fhevm_kit.decryption.signature import load_or_sign
from fhevm_kit.voting.contract import DecryptedResults, VotingContractReader

logger = logging.getLogger(__name__)


async def decrypt_proposal_results(
    contract: VotingContractReader,
    contract_address: str,
    instance: FhevmInstance,
    signer: Signer,
    storage: GenericStringStorage,
    proposal_id: int,
    option_count: int,
) -> DecryptedResults | None:
    """Return the cleartext tally, or None if no decryption credential is available.

    Errors from the contract or from ``user_decrypt`` propagate.
    """
    sig = await load_or_sign(instance, [contract_address], signer, storage)
    if sig is None:
        logger.warning("Decryption signature unavailable for proposal %d", proposal_id)
        return None

    total_handle = await contract.get_total_voters(proposal_id)
    option_handles = [
        await contract.get_option_votes(proposal_id, i) for i in range(option_count)
    ]

    handles = [{"handle": total_handle, "contractAddress": contract_address}]
    handles.extend({"handle": h, "contractAddress": contract_address} for h in option_handles)

    values = await instance.user_decrypt(handles, *sig.user_decrypt_args())

    return DecryptedResults(
        total_voters=int(values[total_handle]),
        option_votes=[int(values[h]) for h in option_handles],
    )
