"""
Error taxonomy for pool operations.

Every failure aborts the whole operation with no state change, so callers
only need to tell the kinds apart; none of them is retried internally.
"""


class ValidationError(Exception):
    """Base class for every rejected pool operation."""
    pass


class DivisionByZero(ValidationError):
    """Redemption against a pool with no outstanding LP supply."""
    pass


class EligibilityFailure(ValidationError):
    """A token id failed allow-list verification."""

    def __init__(self, token_id: int, message: str = None):
        self.token_id = token_id
        super().__init__(message or f"Token {token_id} is not eligible for this pool")


class SlippageFractionalOut(ValidationError):
    """Requested token ids do not match the proportional fractional entitlement."""

    def __init__(self, fractional_out: int, expected: int):
        self.fractional_out = fractional_out
        self.expected = expected
        super().__init__(
            f"Slippage: fractional output {fractional_out} != {expected} "
            f"implied by requested token ids"
        )


class SlippageBaseOut(ValidationError):
    """Base token output is below the caller's floor."""

    def __init__(self, base_out: int, min_base_out: int):
        self.base_out = base_out
        self.min_base_out = min_base_out
        super().__init__(f"Slippage: got {base_out} base tokens, expected at least {min_base_out}")


class SlippageLpOut(ValidationError):
    """Minted LP shares are below the depositor's floor."""

    def __init__(self, lp_out: int, min_lp_out: int):
        self.lp_out = lp_out
        self.min_lp_out = min_lp_out
        super().__init__(f"Slippage: got {lp_out} LP tokens, expected at least {min_lp_out}")


class InsufficientLpBalance(ValidationError):
    """Caller holds fewer LP shares than it tries to burn."""
    pass


class TransferError(ValidationError):
    """A registry rejected a base token or NFT transfer."""
    pass


class ReentrancyError(ValidationError):
    """A pool operation was entered while another one was still in flight."""
    pass
