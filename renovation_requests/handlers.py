import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from . import exceptions


logger = logging.getLogger(__name__)


STATUS_CODES = {
    exceptions.InvalidTransition: status.HTTP_409_CONFLICT,
    exceptions.Conflict: status.HTTP_409_CONFLICT,
    exceptions.ValidationError: status.HTTP_400_BAD_REQUEST,
    exceptions.NotFound: status.HTTP_404_NOT_FOUND,
    exceptions.Forbidden: status.HTTP_403_FORBIDDEN,
}


def marketplace_exception_handler(exc, context):
    if isinstance(exc, exceptions.MarketplaceError):
        status_code = STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
        view = context.get("view")
        logger.warning(
            "%s refused in %s: %s",
            exc.code, view.__class__.__name__ if view else "unknown view", exc.message,
        )
        return Response({'error': exc.message, 'code': exc.code}, status=status_code)

    return exception_handler(exc, context)
