# clinic_core/iam/api/members.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.response import Response

from clinic_core.common.permissions import HasTenantContext
from clinic_core.iam.api.serializers import InviteMemberSerializer, MembershipSerializer
from clinic_core.iam.models import Membership
from clinic_core.iam.scope import context_for_request
from clinic_core.iam.services.membership import MembershipService, list_memberships


class MembershipViewSet(viewsets.GenericViewSet):
    """
    Clinic staff: list, invite, deactivate.
    """
    permission_classes = [HasTenantContext]

    serializer_class = MembershipSerializer
    queryset = Membership.objects.none()

    @extend_schema(tags=["IAM"], responses={200: MembershipSerializer(many=True)})
    def list(self, request):
        ctx = context_for_request(request)
        return Response(MembershipSerializer(list_memberships(ctx), many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["IAM"], request=InviteMemberSerializer, responses={201: MembershipSerializer})
    def create(self, request):
        ctx = context_for_request(request)

        ser = InviteMemberSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        membership = MembershipService.invite(ctx, **ser.validated_data)
        return Response(MembershipSerializer(membership).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["IAM"], responses={200: MembershipSerializer})
    def destroy(self, request, pk=None):
        ctx = context_for_request(request)
        membership = MembershipService.deactivate(ctx, membership_id=pk)
        return Response(MembershipSerializer(membership).data, status=status.HTTP_200_OK)
