"""Errors raised while serving a campaign redirect."""


class RedirectorError(Exception):
    """Base class for redirector errors."""


class CampaignNotFound(RedirectorError):
    """The campaign key is not present in the store."""

    def __init__(self, key: str):
        super().__init__(f"Campaign not found: {key}")
        self.key = key


class NoEligiblePage(RedirectorError):
    """Every page is at quota even after a cycle reset attempt."""

    def __init__(self, key: str):
        super().__init__(f"No destination available for campaign: {key}")
        self.key = key


class PersistenceFailure(RedirectorError):
    """Writing the updated campaign back to the store failed."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Failed to save campaign {key}: {reason}")
        self.key = key
        self.reason = reason
