"""
Error taxonomy

NotFoundError and InvalidStateError map to 404/409 at the HTTP boundary,
ValidationError is turned into a structured field-error result,
UnknownEntityTypeError is a dispatch-table miss.
"""


class RedemptionError(Exception):
    """Base class for all domain errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(RedemptionError):
    """Operating on an id that has no matching row"""
    pass


class InvalidStateError(RedemptionError):
    """Operation violates the live/trashed precondition"""
    pass


class AlreadyInTrashError(NotFoundError, InvalidStateError):
    """No live row with that id: it exists but is already in the trash"""
    pass


class NotInTrashError(NotFoundError, InvalidStateError):
    """No trashed row with that id: it exists but is live"""
    pass


class ValidationError(RedemptionError):
    """Malformed input, reported per field"""

    def __init__(self, field_errors: dict[str, str], message: str = "Validation failed"):
        super().__init__(message)
        self.field_errors = field_errors


class PluginAccessError(RedemptionError):
    """Plugin is not installed or not enabled for the user"""

    def __init__(self, plugin_id: str):
        super().__init__(f"Plugin '{plugin_id}' is not enabled")
        self.plugin_id = plugin_id


class UnknownEntityTypeError(RedemptionError):
    """Entity tag does not resolve to a registered kind"""

    def __init__(self, tag: str):
        super().__init__("Unknown entity type")
        self.tag = tag
