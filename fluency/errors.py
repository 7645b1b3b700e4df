"""Exceptions raised at the deck lookup and persistence boundaries."""


class UnknownDeckError(KeyError):
    """A deck id was requested that is not registered."""

    def __init__(self, deck_id: str):
        super().__init__(deck_id)
        self.deck_id = deck_id

    def __str__(self):
        return f"Deck {self.deck_id} is not registered"


class MalformedSnapshotError(ValueError):
    """Imported or stored data failed structural validation."""


class StorageUnavailable(OSError):
    """The backing store could not be read or written."""
