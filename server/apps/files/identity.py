"""Identity of the caller of a files API request."""

from django.http import HttpRequest

from server.apps.files.exceptions import AuthenticationRequiredError


def current_owner_id(request: HttpRequest) -> str:
    """Resolve the identity subject of the current request.

    Authentication itself is done by Django's middleware; this only
    reads the result.

    Args:
        request: Incoming request.

    Returns:
        Primary key of the authenticated user, as a string.

    Raises:
        AuthenticationRequiredError: If the request is anonymous.
    """
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        raise AuthenticationRequiredError
    return str(user.pk)
