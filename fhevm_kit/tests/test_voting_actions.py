"""Tests for voting contract calls (fhevm_kit/voting/actions.py).

Covers:
- Loading proposals from the contract's camelCase structs
- hasVoted lookups, including failed lookups
- Encrypting and submitting a vote through the engine instance
- Transaction confirmation for the remaining write calls
"""

from __future__ import annotations

import time

import pytest

from fhevm_kit.bootstrap.mock import MockFhevmInstance
from fhevm_kit.core.types import RelayerMetadata
from fhevm_kit.tests.conftest import CONTRACT_A, HARDHAT_METADATA, USER_ADDRESS
from fhevm_kit.voting import (
    ProposalStatus,
    ResultStrategy,
    allow_results_access,
    cast_encrypted_vote,
    create_proposal,
    end_proposal,
    force_end_proposal,
    has_voted,
    load_proposals,
)


class FakeTransaction:
    def __init__(self, receipt: dict) -> None:
        self.receipt = receipt
        self.waited = 0

    async def wait(self) -> dict:
        self.waited += 1
        return self.receipt


class FakeVotingContract:
    """In-memory voting contract binding (reader and writer)."""

    def __init__(self) -> None:
        self.proposals: dict[int, dict] = {}
        self.options: dict[int, list[str]] = {}
        self.voters: set[tuple[int, str]] = set()
        self.calls: list[tuple] = []
        self.transactions: list[FakeTransaction] = []
        self.fail_has_voted = False

    def _tx(self, name: str, *args) -> FakeTransaction:
        self.calls.append((name, *args))
        tx = FakeTransaction({"status": 1, "method": name})
        self.transactions.append(tx)
        return tx

    async def proposal_count(self) -> int:
        return len(self.proposals)

    async def get_proposal(self, proposal_id: int) -> dict:
        return self.proposals[proposal_id]

    async def get_proposal_options(self, proposal_id: int) -> list[str]:
        return self.options[proposal_id]

    async def get_total_voters(self, proposal_id: int) -> str:
        return f"0xtotal{proposal_id}"

    async def get_option_votes(self, proposal_id: int, option_index: int) -> str:
        return f"0xopt{proposal_id}_{option_index}"

    async def has_voted(self, proposal_id: int, voter: str) -> bool:
        if self.fail_has_voted:
            raise ConnectionError("rpc down")
        return (proposal_id, voter) in self.voters

    async def create_proposal(self, title, description, options, duration_seconds, result_strategy):
        return self._tx("createProposal", title, description, options, duration_seconds, result_strategy)

    async def cast_vote(self, proposal_id, encrypted_option, input_proof):
        return self._tx("castVote", proposal_id, encrypted_option, input_proof)

    async def end_proposal(self, proposal_id):
        return self._tx("endProposal", proposal_id)

    async def force_end_proposal(self, proposal_id):
        return self._tx("forceEndProposal", proposal_id)

    async def allow_results_access(self, proposal_id):
        return self._tx("allowResultsAccess", proposal_id)


@pytest.fixture
def contract() -> FakeVotingContract:
    return FakeVotingContract()


@pytest.fixture
def instance() -> MockFhevmInstance:
    return MockFhevmInstance("http://localhost:8545", 31337, RelayerMetadata.model_validate(HARDHAT_METADATA))


class TestLoadProposals:
    @pytest.mark.asyncio
    async def test_parses_contract_structs(self, contract):
        contract.proposals[1] = {
            "id": 1,
            "title": "Treasury allocation",
            "description": "Q3 budget",
            "proposer": USER_ADDRESS,
            "startTime": 1_700_000_000,
            "endTime": 1_700_086_400,
            "resultStrategy": 2,
            "status": 1,
            "resultsRevealed": True,
        }
        contract.options[1] = ["Yes", "No", "Abstain"]

        [proposal] = await load_proposals(contract)

        assert proposal.title == "Treasury allocation"
        assert proposal.start_time == 1_700_000_000
        assert proposal.result_strategy is ResultStrategy.PRIVATE_TO_DAO
        assert proposal.status is ProposalStatus.ENDED
        assert proposal.is_active is False
        assert proposal.results_revealed is True
        assert proposal.option_count == 3

    @pytest.mark.asyncio
    async def test_empty_contract(self, contract):
        assert await load_proposals(contract) == []


class TestHasVoted:
    @pytest.mark.asyncio
    async def test_true_and_false(self, contract):
        contract.voters.add((1, USER_ADDRESS))
        assert await has_voted(contract, 1, USER_ADDRESS) is True
        assert await has_voted(contract, 2, USER_ADDRESS) is False

    @pytest.mark.asyncio
    async def test_failed_lookup_reads_as_not_voted(self, contract):
        contract.fail_has_voted = True
        assert await has_voted(contract, 1, USER_ADDRESS) is False


class TestCastEncryptedVote:
    @pytest.mark.asyncio
    async def test_submits_handle_and_proof(self, contract, instance):
        receipt = await cast_encrypted_vote(contract, instance, CONTRACT_A, USER_ADDRESS, proposal_id=1, option=2)

        name, proposal_id, handle, proof = contract.calls[0]
        assert name == "castVote"
        assert proposal_id == 1
        assert handle.startswith("0x") and len(handle) == 66
        assert proof.startswith("0x")
        assert receipt == {"status": 1, "method": "castVote"}
        assert contract.transactions[0].waited == 1

        decrypted = await instance.user_decrypt(
            [{"handle": handle, "contractAddress": CONTRACT_A}],
            "0xpriv",
            "0xpub",
            "0xsig",
            [CONTRACT_A],
            USER_ADDRESS,
            int(time.time()),
            1,
        )
        assert decrypted == {handle: 2}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("option", [-1, 256, True])
    async def test_rejects_out_of_range_option(self, contract, instance, option):
        with pytest.raises(ValueError):
            await cast_encrypted_vote(contract, instance, CONTRACT_A, USER_ADDRESS, proposal_id=1, option=option)
        assert contract.calls == []


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_proposal_sends_strategy_as_int(self, contract):
        await create_proposal(
            contract, "Title", "Body", ("Yes", "No"), 3600, result_strategy=ResultStrategy.PRIVATE_TO_OWNER
        )
        assert contract.calls == [("createProposal", "Title", "Body", ["Yes", "No"], 3600, 1)]
        assert type(contract.calls[0][-1]) is int
        assert contract.transactions[0].waited == 1

    @pytest.mark.asyncio
    async def test_lifecycle_calls_wait_for_confirmation(self, contract):
        await end_proposal(contract, 4)
        await force_end_proposal(contract, 5)
        await allow_results_access(contract, 6)

        assert [c[:2] for c in contract.calls] == [
            ("endProposal", 4),
            ("forceEndProposal", 5),
            ("allowResultsAccess", 6),
        ]
        assert all(tx.waited == 1 for tx in contract.transactions)
