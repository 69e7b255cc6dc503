class StorageUnavailable(Exception):
    """A read or write against the database failed."""

    def __init__(self, message: str = "storage unavailable"):
        super().__init__(message)


class DeliveryError(Exception):
    """A notification channel could not deliver a message."""

    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(f"{channel}: {message}")
