"""exception types shared by the proposal fetcher stages"""

from typing import List, Optional


class ProposalFetchError(Exception):
    """base class for every error raised by the fetcher"""


class ConfigError(ProposalFetchError):
    pass


class InputError(ProposalFetchError):
    """the user input did not contain a proposal id"""

    def __init__(self, raw_input: Optional[str]):
        self.raw_input = raw_input
        super().__init__(f"Could not extract proposal ID from: {raw_input!r}")


class TransportError(ProposalFetchError):
    """a network call failed outright (dns, connection, non-2xx, bad body)"""


class FetchTimeoutError(TransportError):
    pass


class QueryError(ProposalFetchError):
    """the query service answered with an errors payload"""

    def __init__(self, messages: List[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages) or "unknown query error")


class ValidationError(ProposalFetchError):
    """a response arrived but failed a sanity check"""


class NotFoundError(ProposalFetchError):
    def __init__(self, proposal_id: str):
        self.proposal_id = proposal_id
        super().__init__(f"No proposal found with ID: {proposal_id}")
