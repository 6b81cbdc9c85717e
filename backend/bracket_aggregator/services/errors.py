"""Error taxonomy shared by the clients, the validator and the orchestrator."""


class BracketError(Exception):
    """Base class for every error raised by the aggregation layer."""


class AssignmentValidationError(BracketError):
    """A slot write was rejected; the assignment store is unchanged."""


class MatchNotFound(BracketError):
    def __init__(self, match_id):
        super().__init__(f"Match {match_id} not found")
        self.match_id = match_id


class RemoteUnavailable(BracketError):
    """Upstream returned non-2xx, timed out, or sent something unparseable."""
