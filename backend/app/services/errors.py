"""Domain errors raised by services and translated to HTTP responses by the routers"""


class NotFoundError(LookupError):
    """A referenced row does not exist"""


class VersionError(ValueError):
    """A track version operation violates a catalog rule"""


class CommentStateError(ValueError):
    """A comment cannot move to the requested state"""
