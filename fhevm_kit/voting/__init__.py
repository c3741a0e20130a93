"""Private voting contract glue."""

from fhevm_kit.voting.actions import (
    allow_results_access,
    cast_encrypted_vote,
    create_proposal,
    end_proposal,
    force_end_proposal,
    has_voted,
    load_proposals,
)
from fhevm_kit.voting.contract import (
    DecryptedResults,
    Proposal,
    ProposalStatus,
    ResultStrategy,
    TransactionHandle,
    VotingContractReader,
    VotingContractWriter,
)
from fhevm_kit.voting.results import decrypt_proposal_results

__all__ = [
    "DecryptedResults",
    "Proposal",
    "ProposalStatus",
    "ResultStrategy",
    "TransactionHandle",
    "VotingContractReader",
    "VotingContractWriter",
    "allow_results_access",
    "cast_encrypted_vote",
    "create_proposal",
    "decrypt_proposal_results",
    "end_proposal",
    "force_end_proposal",
    "has_voted",
    "load_proposals",
]
