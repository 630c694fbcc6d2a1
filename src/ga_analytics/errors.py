class UnknownTrackerError(ValueError):
    """Raised when a tracker key is missing from the tracker configuration."""

    def __init__(self, tracker_id: str) -> None:
        self.tracker_id = tracker_id
        super().__init__(
            f'There is no tracker configuration assigned with the key "{tracker_id}".'
        )
