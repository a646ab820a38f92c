class FeedFetchError(Exception):
    """Raised when an RSS/Atom feed cannot be fetched or parsed."""


class StoreError(Exception):
    """Raised when the article store cannot complete an operation."""


class DuplicateArticleError(StoreError):
    """Raised when an insert violates the unique constraint on the article link."""
