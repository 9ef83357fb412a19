# clinic_core/iam/api/me.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from clinic_core.common.api.exceptions import NoActiveMembership
from clinic_core.iam.api.serializers import MeResponseSerializer
from clinic_core.iam.scope import context_for_request, tenant_id_from_headers
from clinic_core.iam.services.membership import list_user_memberships


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["IAM"], responses={200: MeResponseSerializer})
    def get(self, request):
        """
        Returns user info, active memberships and the resolved clinic context.

        X-Tenant-Id is OPTIONAL here. When present it MUST name a clinic the
        caller actively belongs to (403 otherwise). Without it, a caller with
        no membership simply gets `active_context: null`.
        """
        explicit = tenant_id_from_headers(request) is not None
        try:
            active_context = context_for_request(request).as_dict()
        except NoActiveMembership:
            if explicit:
                raise
            active_context = None

        user = request.user
        return Response(
            {
                "user": {
                    "id": user.id,
                    "username": user.get_username(),
                    "email": user.email or None,
                    "is_superuser": bool(user.is_superuser),
                },
                "memberships": list_user_memberships(user.id),
                "active_context": active_context,
            },
            status=status.HTTP_200_OK,
        )
