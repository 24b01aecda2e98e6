class FetchFailed(Exception):
    """The live invite list for a guild could not be fetched."""

    def __init__(self, community: int, detail: str):
        super().__init__(f"Failed to fetch invites for guild {community}: {detail}")
        self.community = community
        self.detail = detail


class PermissionDenied(FetchFailed):
    """The bot lacks 'Manage Guild' in the guild."""


class TransientNetworkError(FetchFailed):
    """HTTP failure or timeout, a later fetch may succeed."""
