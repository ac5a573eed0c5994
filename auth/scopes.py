"""
Google Docs OAuth Scopes

Centralizes the scope constants and the named scope groups that tools
request through ``require_google_service``.
"""

import logging

logger = logging.getLogger(__name__)

# Google Docs scopes
DOCS_READONLY_SCOPE = "https://www.googleapis.com/auth/documents.readonly"
DOCS_WRITE_SCOPE = "https://www.googleapis.com/auth/documents"

DOCS_SCOPES = [DOCS_READONLY_SCOPE, DOCS_WRITE_SCOPE]

# Scope groups named by tools. Write access implies read access.
SCOPE_GROUPS = {
    "docs_read": [DOCS_READONLY_SCOPE, DOCS_WRITE_SCOPE],
    "docs_write": [DOCS_WRITE_SCOPE],
}


def resolve_scope_group(group: str) -> list[str]:
    """
    Return the scopes that satisfy a named group.

    A credential satisfies the group if it holds any one of the returned scopes.

    Raises:
        KeyError: If the group name is unknown
    """
    if group not in SCOPE_GROUPS:
        raise KeyError(f"Unknown scope group '{group}'. Known groups: {sorted(SCOPE_GROUPS)}")
    return SCOPE_GROUPS[group]
