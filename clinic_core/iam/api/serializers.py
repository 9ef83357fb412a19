# clinic_core/iam/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.iam.models import Membership


class MeUserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField(allow_null=True, required=False)
    email = serializers.EmailField(allow_null=True, required=False)
    is_superuser = serializers.BooleanField()


class MeMembershipSerializer(serializers.Serializer):
    membership_id = serializers.UUIDField()
    tenant_id = serializers.UUIDField()
    tenant_slug = serializers.CharField()
    tenant_name = serializers.CharField()
    role_name = serializers.CharField()


class ActiveContextSerializer(serializers.Serializer):
    tenant_id = serializers.UUIDField()
    user_id = serializers.IntegerField()
    membership_id = serializers.UUIDField()
    role = serializers.CharField()
    permissions = serializers.ListField(child=serializers.CharField())


class MeResponseSerializer(serializers.Serializer):
    user = MeUserSerializer()
    memberships = MeMembershipSerializer(many=True)
    active_context = ActiveContextSerializer(allow_null=True)


class MembershipSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    name = serializers.SerializerMethodField()
    role_name = serializers.CharField(source="role.name", read_only=True)

    class Meta:
        model = Membership
        fields = [
            "id",
            "tenant_id",
            "user_id",
            "email",
            "name",
            "role_name",
            "is_active",
            "joined_at",
        ]
        read_only_fields = fields

    def get_name(self, obj) -> str:
        return obj.user.get_full_name() or obj.user.get_username()


class InviteMemberSerializer(serializers.Serializer):
    email = serializers.EmailField()
    role_name = serializers.CharField(max_length=64)
