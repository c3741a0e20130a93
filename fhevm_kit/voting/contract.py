"""Capability interfaces for the private voting contract.

The contract itself is an external collaborator: these protocols only
describe the calls this package makes through an injected contract
binding (e.g. a web3 contract wrapper).
"""

from __future__ import annotations

import enum
from typing import Any, Mapping, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ProposalStatus(int, enum.Enum):
    ACTIVE = 0
    ENDED = 1
    CANCELLED = 2


class ResultStrategy(int, enum.Enum):
    PUBLIC_ON_END = 0
    PRIVATE_TO_OWNER = 1
    PRIVATE_TO_DAO = 2


class Proposal(BaseModel):
    """Proposal metadata as returned by the contract.

    Accepts the contract's camelCase struct fields (``startTime``,
    ``resultStrategy``, ...) as well as the snake_case names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    description: str = ""
    proposer: str
    start_time: int
    end_time: int
    options: list[str] = Field(default_factory=list)
    result_strategy: ResultStrategy = ResultStrategy.PUBLIC_ON_END
    status: ProposalStatus = ProposalStatus.ACTIVE
    results_revealed: bool = False

    @property
    def option_count(self) -> int:
        return len(self.options)

    @property
    def is_active(self) -> bool:
        return self.status is ProposalStatus.ACTIVE


class DecryptedResults(BaseModel):
    """Cleartext tally of a proposal."""

    total_voters: int
    option_votes: list[int] = Field(default_factory=list)


class TransactionHandle(Protocol):
    async def wait(self) -> Any:
        ...


class VotingContractReader(Protocol):
    """Read operations; encrypted values come back as ciphertext handles."""

    async def proposal_count(self) -> int:
        ...

    async def get_proposal(self, proposal_id: int) -> Mapping[str, Any]:
        ...

    async def get_proposal_options(self, proposal_id: int) -> Sequence[str]:
        ...

    async def get_total_voters(self, proposal_id: int) -> str:
        ...

    async def get_option_votes(self, proposal_id: int, option_index: int) -> str:
        ...

    async def has_voted(self, proposal_id: int, voter: str) -> bool:
        ...


class VotingContractWriter(Protocol):
    """Write operations; each returns a transaction handle to await."""

    async def create_proposal(
        self,
        title: str,
        description: str,
        options: Sequence[str],
        duration_seconds: int,
        result_strategy: int,
    ) -> TransactionHandle:
        ...

    async def cast_vote(self, proposal_id: int, encrypted_option: str, input_proof: str) -> TransactionHandle:
        ...

    async def end_proposal(self, proposal_id: int) -> TransactionHandle:
        ...

    async def force_end_proposal(self, proposal_id: int) -> TransactionHandle:
        ...

    async def allow_results_access(self, proposal_id: int) -> TransactionHandle:
        ...
