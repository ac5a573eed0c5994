# Make the auth directory a Python package
# Public API exports from canonical locations

from auth.credential_store import (
    CredentialStore,
    LocalDirectoryCredentialStore,
    get_credential_store,
    set_credential_store,
)
from auth.scopes import DOCS_READONLY_SCOPE, DOCS_SCOPES, DOCS_WRITE_SCOPE, resolve_scope_group

__all__ = [
    "CredentialStore",
    "LocalDirectoryCredentialStore",
    "get_credential_store",
    "set_credential_store",
    "DOCS_READONLY_SCOPE",
    "DOCS_WRITE_SCOPE",
    "DOCS_SCOPES",
    "resolve_scope_group",
]
