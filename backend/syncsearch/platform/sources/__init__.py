"""Source adapters.

Importing this package registers every adapter with the ``source`` decorator.
"""

from syncsearch.platform.sources.airtable import AirtableSource
from syncsearch.platform.sources.google_drive import GoogleDriveSource

__all__ = ["AirtableSource", "GoogleDriveSource"]
