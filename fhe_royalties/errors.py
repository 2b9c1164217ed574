"""Exceptions raised by the royalty reveal and claim flow"""


class RoyaltyError(Exception):
    """Base exception for royalty service errors"""
    pass


class UnknownRequest(RoyaltyError):
    """Callback for a request id that is not registered or already consumed"""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Unknown oracle request: {request_id}")


class DuplicateRequestId(RoyaltyError):
    """The oracle issued a request id that is still live"""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Oracle request id already registered: {request_id}")


class ProofInvalid(RoyaltyError):
    """Oracle attestation did not verify against the cleartext"""

    def __init__(self, request_id: str, reason: str = "proof verification failed"):
        self.request_id = request_id
        self.reason = reason
        super().__init__(f"Invalid oracle proof for request {request_id}: {reason}")


class DecodeError(ProofInvalid):
    """Cleartext returned by the oracle has the wrong shape or range"""


class AlreadyDistributed(RoyaltyError):
    def __init__(self, contributor_key: bytes):
        self.contributor_key = contributor_key
        super().__init__(f"Royalty already distributed for contributor {contributor_key.hex()}")


class AlreadyClaimed(RoyaltyError):
    def __init__(self, contributor_key: bytes):
        self.contributor_key = contributor_key
        super().__init__(f"Royalty already claimed for contributor {contributor_key.hex()}")


class NoDistribution(RoyaltyError):
    def __init__(self, contributor_key: bytes):
        self.contributor_key = contributor_key
        super().__init__(f"No distribution for contributor {contributor_key.hex()}")


class ContributionNotFound(RoyaltyError):
    def __init__(self, contribution_id: int):
        self.contribution_id = contribution_id
        super().__init__(f"Contribution not found: {contribution_id}")


class InvalidContributorKey(RoyaltyError):
    """Contributor key is not bytes of the configured size"""
    pass


class InvalidCiphertext(RoyaltyError):
    pass


class InvalidDeposit(RoyaltyError):
    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Deposit amount must be a non-negative integer, got {amount!r}")


class DatabaseError(RoyaltyError):
    """Storage failure while processing a royalty operation"""
    pass
