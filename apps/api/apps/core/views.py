"""
Shared view plumbing.
"""
from apps.core.observability.correlation import bind_user


class CorrelatedUserMixin:
    """
    Bind the JWT-authenticated user to the log correlation context.

    Correlation middleware runs before DRF authenticates the token, so the
    actor only becomes known here.
    """

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        if request.user and request.user.is_authenticated:
            bind_user(request.user)
