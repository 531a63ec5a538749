"""Vote submission and iteration lookup, independent of the HTTP layer."""
import logging
from typing import Union

from pydantic import ValidationError

from .errors import MalformedRequestError, StaleIterationError
from .models import VoteIn
from .state import IterationCounter, VoteLedger

logger = logging.getLogger(__name__)


class VoteService:
    def __init__(
        self,
        counter: IterationCounter,
        ledger: VoteLedger,
        enforce_iteration: bool = False,
    ) -> None:
        self.counter = counter
        self.ledger = ledger
        self.enforce_iteration = enforce_iteration

    def get_iteration(self) -> int:
        return self.counter.get()

    def parse_vote(self, body: Union[bytes, str]) -> VoteIn:
        try:
            return VoteIn.model_validate_json(body)
        except ValidationError as e:
            logger.warning(f"offending content: {body!r}")
            raise MalformedRequestError(
                f"Could not unmarshal votes message: {e.errors()[0]['msg']}"
            ) from e

    def submit_vote(self, body: Union[bytes, str]) -> VoteIn:
        """
        Parse a raw vote payload and record it.

        Raises MalformedRequestError, StaleIterationError (only when
        enforce_iteration is on) or DuplicateVoteError. The claimed
        iteration is otherwise accepted as-is.
        """
        vote = self.parse_vote(body)

        def check_iteration() -> None:
            current = self.counter.get()
            if vote.iteration != current:
                raise StaleIterationError(vote.iteration, current)

        # checked under the ledger lock, so a reset-and-advance cannot slip
        # between the check and the record
        self.ledger.record_votes(
            vote.user_address,
            vote.images,
            guard=check_iteration if self.enforce_iteration else None,
        )
        logger.info(
            f"Vote recorded: user={vote.user_address}, iteration={vote.iteration}, images={vote.images}"
        )
        return vote
