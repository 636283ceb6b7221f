"""Exceptions raised by route_docs.

Most of them never escape the library: extraction degrades instead of
aborting, and the exceptions are caught at the seam that degrades.
"""


class RouteDocsError(Exception):
    """Base class for all route_docs errors."""


class MalformedAnnotation(RouteDocsError):
    """Tag content does not match the grammar of its tag."""

    def __init__(self, tag_name: str, content: str, reason: str = ""):
        self.tag_name = tag_name
        self.content = content
        message = f"Malformed @{tag_name} annotation: {content!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UnresolvableReference(RouteDocsError):
    """A dotted path in an annotation could not be imported."""

    def __init__(self, reference: str, reason: str = ""):
        self.reference = reference
        message = f"Cannot resolve {reference!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConfigError(RouteDocsError):
    """The rules file or settings are invalid."""
