from django.conf import settings

from .exceptions import PermissionDenied, Unauthenticated

# ------------------------------------------------------------
# Admin check reads the role claim of the validated access token.
# The account table is not consulted at request time: the claim
# is issued by the identity provider (token endpoint) and signed.
# ------------------------------------------------------------


def has_admin_role_claim(token) -> bool:
    """Returns True if the validated token carries the admin role claim."""
    if token is None:
        return False
    try:
        role = token.get(settings.ROLE_CLAIM)
    except AttributeError:
        return False
    return role == settings.ADMIN_ROLE


def require_admin(request) -> str:
    """
    Ensure the caller is an authenticated operator with the admin role claim.

    Returns:
        The operator's user id as string (recorded as ``processed_by``)

    Raises:
        Unauthenticated: No valid token accompanied the request
        PermissionDenied: Token present but without admin role claim
    """
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated or request.auth is None:
        raise Unauthenticated()
    if not has_admin_role_claim(request.auth):
        raise PermissionDenied()
    return str(user.pk)
