class UserNotFoundError(LookupError):
    """No active user matches the given email."""

    def __init__(self, email: str) -> None:
        super().__init__(f"No active user found for {email}")
        self.email = email
