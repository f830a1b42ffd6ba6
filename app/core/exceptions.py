class StoreError(Exception):
    """Base error for catalog and purchase operations.

    ``status_code`` is what the HTTP layer answers with; ``str(error)`` is the
    human-readable reason shown to the operator.
    """

    status_code = 500


class ValidationError(StoreError, ValueError):
    status_code = 400


class NotFoundError(StoreError, ValueError):
    status_code = 404


class NoOpError(StoreError):
    status_code = 409


class TransientIOError(StoreError):
    status_code = 502


class CatalogConfigError(TransientIOError):
    status_code = 503
