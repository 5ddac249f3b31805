"""
seatassign/errors.py
"""


class InvalidConfiguration(ValueError):
    """A classroom that cannot be laid out (bad columns, capacity or desk counts)."""

    def __init__(self, message: str, room_name: str = ""):
        self.room_name = room_name
        if room_name:
            message = f"{room_name}: {message}"
        super().__init__(message)


class DataFormatError(ValueError):
    """An import file whose structure cannot be read."""
