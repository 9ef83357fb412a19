from __future__ import annotations

from django.utils.deprecation import MiddlewareMixin

from clinic_core.common.api.exceptions import ensure_request_id


class RequestIdMiddleware(MiddlewareMixin):
    """
    Accepts an inbound X-Request-Id (or mints one) and echoes it on the response,
    so error envelopes and log lines can be correlated.
    """

    HEADER = "X-Request-Id"
    META_KEY = "HTTP_X_REQUEST_ID"
    MAX_LENGTH = 64

    def process_request(self, request):
        inbound = (request.META.get(self.META_KEY) or "").strip()
        if inbound and len(inbound) <= self.MAX_LENGTH:
            request.request_id = inbound
        else:
            ensure_request_id(request)
        return None

    def process_response(self, request, response):
        rid = getattr(request, "request_id", None)
        if rid and not response.has_header(self.HEADER):
            response[self.HEADER] = rid
        return response
