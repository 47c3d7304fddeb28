from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    student_ids = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ("id", "email", "first_name", "last_name", "phone", "role", "is_staff", "is_active", "student_ids")
        read_only_fields = ("email", "role", "is_staff", "is_active")

    def get_student_ids(self, obj):
        return list(obj.guardian_links.values_list("student_id", flat=True))
