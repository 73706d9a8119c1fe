class CatalogError(Exception):
    """Base class for catalog load and lookup failures."""


class TopicNotFoundError(CatalogError, KeyError):
    def __init__(self, title: str):
        self.title = title
        super().__init__(title)

    def __str__(self) -> str:
        return f"Topic not found: {self.title!r}"


class EmptyDocumentError(CatalogError, ValueError):
    def __init__(self, source: str, reason: str = "no topic sections found"):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")
