class EmailNotVerifiedError(Exception):
    """Raised when an unverified user tries to log in."""

    def __init__(self, email: str) -> None:
        """Keep the email so the client can offer to resend the code."""
        super().__init__("Email address not verified.")
        self.email = email


class AccountLockedError(Exception):
    """Raised when a locked or suspended account tries to log in."""
