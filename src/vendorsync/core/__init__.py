"""vendorsync core library package."""

from . import exceptions  # noqa: F401
