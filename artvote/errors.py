"""Error types raised by the iteration/vote core."""
import json


class ArtVoteError(Exception):
    """Base class for all errors raised by artvote."""


class ConfigError(ArtVoteError):
    """Persisted or configured state is unusable; the server must not start."""


class MalformedRequestError(ArtVoteError):
    """A vote payload could not be parsed into the expected shape."""


class DuplicateVoteError(ArtVoteError):
    def __init__(self, user_address: str):
        self.user_address = user_address
        super().__init__(
            f"User {json.dumps(user_address, ensure_ascii=False)} has already voted in this iteration"
        )


class StaleIterationError(ArtVoteError):
    def __init__(self, claimed: int, current: int):
        self.claimed = claimed
        self.current = current
        super().__init__(
            f"Vote is for iteration {claimed}, current iteration is {current}"
        )


class PersistenceError(ArtVoteError):
    """The iteration marker could not be written."""


class FileSystemError(ArtVoteError):
    """An image directory operation failed."""
