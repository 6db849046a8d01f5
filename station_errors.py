"""Error taxonomy for station workflows."""


class StationError(Exception):
    """Base class; the message is operator-facing."""

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.__class__.__name__


class ContextLookupError(StationError):
    """Identifier not found or the production system could not be reached."""


class ValidationError(StationError):
    """Quantity, part or operation mismatch. Operator-correctable."""


class CommitError(StationError):
    """Commit action failed after validation passed. Possibly transient."""


class DuplicateError(StationError):
    pass


class CapacityError(StationError):
    pass


class StationBusyError(StationError):
    pass
