"""Voting contract calls that go through the FHEVM instance or wait on a transaction.

Votes are encrypted client side: the chosen option index becomes an 8-bit
encrypted input bound to the contract and the voter, and only its handle
and input proof reach the chain.

Usage:
    receipt = await cast_encrypted_vote(
        writer, instance, contract_address, await signer.get_address(),
        proposal_id=1, option=2,
    )
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from fhevm_kit.core.types import FhevmInstance
from fhevm_kit.voting.contract import (
    Proposal,
    ResultStrategy,
    TransactionHandle,
    VotingContractReader,
    VotingContractWriter,
)

logger = logging.getLogger(__name__)


async def _confirm(tx: TransactionHandle, action: str, proposal_id: int | None = None) -> Any:
    logger.debug("Waiting for %s transaction (proposal %s)", action, proposal_id)
    receipt = await tx.wait()
    logger.info("%s confirmed (proposal %s)", action, proposal_id)
    return receipt


# ── Reads ────────────────────────────────────────────────────────────────────


async def load_proposals(reader: VotingContractReader) -> list[Proposal]:
    """All proposals, ids ``1..proposal_count()``, with their option labels."""
    count = int(await reader.proposal_count())
    proposals = []
    for proposal_id in range(1, count + 1):
        raw = dict(await reader.get_proposal(proposal_id))
        raw["options"] = list(await reader.get_proposal_options(proposal_id))
        proposals.append(Proposal.model_validate(raw))
    return proposals


async def has_voted(reader: VotingContractReader, proposal_id: int, voter: str) -> bool:
    """Whether ``voter`` has voted; a failed lookup reads as "not voted"."""
    try:
        return bool(await reader.has_voted(proposal_id, voter))
    except Exception as exc:
        logger.warning(
            "hasVoted lookup failed for proposal %d: %s",
            proposal_id,
            exc,
            extra={"user_address": voter},
        )
        return False


# ── Writes ───────────────────────────────────────────────────────────────────


async def create_proposal(
    writer: VotingContractWriter,
    title: str,
    description: str,
    options: Sequence[str],
    duration_seconds: int,
    result_strategy: ResultStrategy = ResultStrategy.PUBLIC_ON_END,
) -> Any:
    tx = await writer.create_proposal(
        title, description, list(options), duration_seconds, int(ResultStrategy(result_strategy))
    )
    return await _confirm(tx, "createProposal")


async def cast_encrypted_vote(
    writer: VotingContractWriter,
    instance: FhevmInstance,
    contract_address: str,
    user_address: str,
    proposal_id: int,
    option: int,
) -> Any:
    """Encrypt ``option`` through ``instance`` and submit it; returns the receipt.

    Raises:
        ValueError: ``option`` does not fit in 8 bits.
    """
    if isinstance(option, bool) or not 0 <= option <= 0xFF:
        raise ValueError(f"Option index {option!r} does not fit in an 8-bit encrypted integer")

    encrypted = await instance.create_encrypted_input(contract_address, user_address).add8(option).encrypt()
    logger.debug("Vote encrypted for proposal %d", proposal_id, extra={"user_address": user_address})

    tx = await writer.cast_vote(proposal_id, encrypted["handles"][0], encrypted["inputProof"])
    return await _confirm(tx, "castVote", proposal_id)


async def end_proposal(writer: VotingContractWriter, proposal_id: int) -> Any:
    return await _confirm(await writer.end_proposal(proposal_id), "endProposal", proposal_id)


async def force_end_proposal(writer: VotingContractWriter, proposal_id: int) -> Any:
    """End a proposal before its deadline (proposer or admin only)."""
    return await _confirm(await writer.force_end_proposal(proposal_id), "forceEndProposal", proposal_id)


async def allow_results_access(writer: VotingContractWriter, proposal_id: int) -> Any:
    """Ask the contract to grant the caller decryption rights on the tally."""
    return await _confirm(await writer.allow_results_access(proposal_id), "allowResultsAccess", proposal_id)
