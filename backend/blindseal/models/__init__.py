from __future__ import annotations

from blindseal.models.document import EncryptedDocument  # noqa: F401
from blindseal.models.search_token import SearchToken  # noqa: F401
