class CatalogError(Exception):
    pass


class CatalogTransportError(CatalogError):
    """A catalog service could not be reached or answered with an error."""


class CatalogPayloadError(CatalogError, ValueError):
    """A catalog service answered with data of the wrong shape."""
